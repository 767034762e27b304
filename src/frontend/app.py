"""Main Textual app for the branchbot shell."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import Footer, Input, RichLog, Static

from adapters.shell_mapper import build_message
from adapters.shell_transport import ShellTransport
from core.branches import BranchRegistry
from core.context import BotContext
from core.dispatcher import CycleResult, Dispatcher
from core.middleware import Middleware

LOGGER = logging.getLogger(__name__)

ACCENT = "#2AABEE"


class ShellApp(App):
    """Chat with the bot; each submitted line is one inbound message."""

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+l", "clear_log", "Clear"),
    ]

    CSS_PATH = "app.tcss"

    def __init__(
        self,
        registry: BranchRegistry,
        middleware: Middleware,
        context: BotContext,
        after_cycle: Optional[Callable[[CycleResult], None]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._context = context
        self._after_cycle = after_cycle
        settings = context.settings
        self._bot_name = settings.get("name")
        self._bot_names = [settings.get("name"), settings.get("alias")]
        self._user_id = str(settings.get("shell-user-id"))
        self._user_name = settings.get("shell-user-name")
        self._room_id = settings.get("shell-room")
        transport = ShellTransport(sink=self._write_bot, bot_name=self._bot_name)
        self._dispatcher = Dispatcher(registry, middleware, transport, context)

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            yield Static(self._title_text(), id="title")
            yield Static(
                f"you are {self._user_name} in #{self._room_id}; "
                f"address the bot with '{self._bot_name} ...'",
                classes="subtle",
            )
        yield RichLog(id="log", wrap=True, markup=False)
        yield Input(placeholder="Say something...", id="input")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        event.input.value = ""
        if not text:
            return
        self._write(Text.assemble((f"{self._user_name}: ", "bold"), text))
        message = build_message(
            text,
            user_id=self._user_id,
            user_name=self._user_name,
            room_id=self._room_id,
            bot_names=self._bot_names,
        )
        # Workers let a slow branch (a delayed ping) run while new lines arrive.
        self.run_worker(self._dispatch(message), exclusive=False)

    async def _dispatch(self, message) -> None:
        try:
            result = await self._dispatcher.receive(message)
        except Exception:
            LOGGER.exception("Error while processing message")
            return
        if self._after_cycle is not None:
            self._after_cycle(result)

    def action_clear_log(self) -> None:
        self.query_one("#log", RichLog).clear()

    def _write(self, line: Text) -> None:
        self.query_one("#log", RichLog).write(line)

    def _write_bot(self, line: str) -> None:
        self._write(Text(line, style=ACCENT))

    def _title_text(self) -> Text:
        return Text.assemble(
            (self._bot_name.upper(), ACCENT),
            (" > Shell", "bold"),
        )
