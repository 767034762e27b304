"""Telegram bot client for branchbot.

branchbot logs in with a bot token, so no interactive login is involved. The
session file only caches the authorization between runs.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from telethon import TelegramClient

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class BotCredentials:
    api_id: int
    api_hash: str
    token: str
    session_name: str = "branchbot"


def read_credentials(environ: Optional[Mapping[str, str]] = None) -> BotCredentials:
    """Read API_ID, API_HASH, TELEGRAM_BOT_TOKEN and SESSION_NAME."""

    environ = os.environ if environ is None else environ
    missing = [
        name for name in ("API_ID", "API_HASH", "TELEGRAM_BOT_TOKEN") if not environ.get(name)
    ]
    if missing:
        raise RuntimeError(f"Missing {', '.join(missing)} in environment")
    try:
        api_id = int(environ["API_ID"])
    except ValueError as exc:
        raise RuntimeError("API_ID must be an integer") from exc
    return BotCredentials(
        api_id=api_id,
        api_hash=environ["API_HASH"],
        token=environ["TELEGRAM_BOT_TOKEN"],
        session_name=environ.get("SESSION_NAME") or "branchbot",
    )


def connect_bot() -> TelegramClient:
    """Create the Telethon client and sign in as the bot."""

    load_dotenv()
    credentials = read_credentials()

    LOGGER.info("Signing in to Telegram as a bot (session %s)", credentials.session_name)
    client = TelegramClient(credentials.session_name, credentials.api_id, credentials.api_hash)
    client.start(bot_token=credentials.token)
    return client
