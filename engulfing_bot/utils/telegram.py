"""Telegram operator notifications. Never log token or chat_id."""

from __future__ import annotations
import logging
from typing import Callable

import requests

logger = logging.getLogger("engulfing_bot.utils.telegram")

TELEGRAM_API = "https://api.telegram.org"


def send_telegram(text: str, bot_token: str = "", chat_id: str = "") -> bool:
    """Send message to Telegram. Returns True on success, False if unconfigured or failed."""
    if not bot_token or not chat_id:
        logger.debug("Telegram not configured, skipping message (len=%d)", len(text))
        return False
    try:
        r = requests.post(
            f"{TELEGRAM_API}/bot{bot_token}/sendMessage",
            json={"chat_id": chat_id, "text": text},
            timeout=10,
        )
    except requests.RequestException as e:
        logger.warning("Telegram error: %s", type(e).__name__)
        return False
    if r.status_code != 200:
        logger.warning("Telegram send failed: %s %s", r.status_code, r.text[:200])
        return False
    return True


def make_notifier(bot_token: str = "", chat_id: str = "", prefix: str = "") -> Callable[[str], None]:
    """Bind credentials into a one-argument notifier for the agent."""
    def notify(text: str) -> None:
        send_telegram(f"{prefix}{text}", bot_token, chat_id)
    return notify
