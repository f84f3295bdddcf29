"""Outbound league notifications (Slack).

``notify`` is fire-and-forget: delivery happens on a daemon thread after the
ledger transaction has committed, and any failure is logged, never raised.
A league without a bot token or channel for the category is a silent no-op.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Optional, Protocol

import requests

from config import NOTIFY_TIMEOUT_SECONDS, SLACK_API_URL
from league_repo import LeagueRepo
from schema import NOTIFY_TRADE_BLOCK, NOTIFY_TRANSACTIONS

logger = logging.getLogger(__name__)

_CHANNEL_COLUMNS = {
    NOTIFY_TRANSACTIONS: "slack_channel_transactions",
    NOTIFY_TRADE_BLOCK: "slack_channel_trade_block",
}


class Notifier(Protocol):
    def notify(self, league_id: str, category: str, text: str) -> None:
        ...


class NullNotifier:
    def notify(self, league_id: str, category: str, text: str) -> None:
        return None


class SlackNotifier:
    """Posts to chat.postMessage with the league's bot token."""

    def __init__(
        self,
        db_path: str,
        *,
        api_url: str = SLACK_API_URL,
        timeout: float = NOTIFY_TIMEOUT_SECONDS,
        background: bool = True,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.db_path = db_path
        self.api_url = api_url
        self.timeout = timeout
        self.background = background
        self._session = session or requests.Session()

    def notify(self, league_id: str, category: str, text: str) -> None:
        if not self.background:
            self._deliver(league_id, category, text)
            return
        t = threading.Thread(
            target=self._deliver,
            args=(league_id, category, text),
            name=f"notify-{category}",
            daemon=True,
        )
        t.start()

    def _lookup_target(self, league_id: str, category: str) -> Optional[tuple[str, str]]:
        column = _CHANNEL_COLUMNS.get(category)
        if column is None:
            return None
        with LeagueRepo(self.db_path) as repo:
            cfg = repo.get_integration(league_id)
        if not cfg:
            return None
        token = (cfg.get("slack_bot_token") or "").strip()
        channel = (cfg.get(column) or "").strip()
        if not token or not channel:
            return None
        return token, channel

    def _deliver(self, league_id: str, category: str, text: str) -> None:
        try:
            target = self._lookup_target(league_id, category)
            if target is None:
                return
            token, channel = target
            resp = self._session.post(
                self.api_url,
                headers={"Authorization": f"Bearer {token}"},
                json={"channel": channel, "text": text},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
            if not body.get("ok", False):
                logger.warning("slack rejected message league=%s category=%s error=%s", league_id, category, body.get("error"))
        except (requests.RequestException, sqlite3.Error, ValueError):
            logger.warning("notification delivery failed league=%s category=%s", league_id, category, exc_info=True)
