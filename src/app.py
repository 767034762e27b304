"""Application entry point for branchbot."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional, Tuple

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.http_request import HttpRequester
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_mapper import build_message
from adapters.telegram_transport import TelegramTransport
from client import connect_bot
from core.branches import BranchRegistry
from core.config import Settings
from core.context import BotContext
from core.dispatcher import CycleResult, Dispatcher
from core.memory import MemoryStore
from core.middleware import Middleware
from scripts import demo

NAME = "BRANCHBOT"
FONT = "tarty-1"

# Environment values masked in every log line when redaction is enabled.
SECRET_ENV_VARS = ["TELEGRAM_BOT_TOKEN", "API_HASH", "BOT_OMDB_API_KEY"]


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    values = []
    for name in redact_cfg.get("patterns", SECRET_ENV_VARS):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(bot_settings: Settings, console_default: bool) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(bot_settings.get("log-level") or config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    # The shell TUI owns the terminal, so console logging defaults off there.
    if config.get("console", console_default):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/branchbot.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _build_bot(
    console_default: bool,
) -> Tuple[BranchRegistry, Middleware, BotContext, Optional[SQLiteStorage]]:
    """Wire settings, memory, storage and scripts shared by every transport.

    Logging is configured first so warnings raised while registering scripts
    reach the handlers.
    """

    bot_settings = settings.build_settings()
    _configure_logging(bot_settings, console_default=console_default)
    memory = MemoryStore()

    storage = None
    if settings.MEMORY_ENABLED:
        storage = SQLiteStorage(settings.DB_PATH)
        storage.init_db()
        memory.load(storage.load_memory())

    context = BotContext(memory=memory, settings=bot_settings, request=HttpRequester())
    registry = BranchRegistry()
    middleware = Middleware()
    demo.register(registry, middleware, bot_settings)
    return registry, middleware, context, storage


def _memory_saver(context: BotContext, storage: Optional[SQLiteStorage]):
    logger = logging.getLogger(__name__)

    def save(result: CycleResult) -> None:
        if storage is None:
            return
        try:
            storage.save_memory(context.memory.snapshot())
        except Exception:
            logger.exception("Failed to persist memory after %s cycle", result.status.value)

    return save


def _shell() -> None:
    registry, middleware, context, storage = _build_bot(console_default=False)
    logger = logging.getLogger(__name__)
    logger.info("%s branches are loaded", len(registry))

    from frontend.app import ShellApp

    ShellApp(
        registry,
        middleware,
        context,
        after_cycle=_memory_saver(context, storage),
    ).run()


def _telegram() -> None:
    _print_banner()
    registry, middleware, context, storage = _build_bot(console_default=True)
    logger = logging.getLogger(__name__)

    logger.info("Starting branchbot")
    logger.info("%s branches are loaded", len(registry))

    client = connect_bot()
    me = client.loop.run_until_complete(client.get_me())
    bot_names = [context.settings.get("name"), context.settings.get("alias"), getattr(me, "username", None)]

    dispatcher = Dispatcher(registry, middleware, TelegramTransport(client), context)
    save_memory = _memory_saver(context, storage)

    # One handler for every incoming message; filtering happens in the dispatcher.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            message = await build_message(event.message, bot_names)
            result = await dispatcher.receive(message)
        except Exception:
            logger.exception("Error while processing message")
            return
        save_memory(result)

    logger.info("Client connected. Listening for incoming messages...")
    client.run_until_disconnected()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="branchbot")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("shell", help="Chat with the bot in the terminal")
    subparsers.add_parser("telegram", help="Run the bot on Telegram")

    args = parser.parse_args(argv)
    if args.command == "telegram":
        _telegram()
        return
    _shell()


if __name__ == "__main__":
    main()
