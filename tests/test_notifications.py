import logging

import requests

from notifications import SlackNotifier
from schema import NOTIFY_TRADE_BLOCK, NOTIFY_TRANSACTIONS


class _Response:
    def __init__(self, body, status=200):
        self._body = body
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")

    def json(self):
        return self._body


class _Session:
    def __init__(self, response=None, exc=None):
        self.response = response or _Response({"ok": True})
        self.exc = exc
        self.posts = []

    def post(self, url, **kwargs):
        self.posts.append((url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.response


def _notifier(db_path, session):
    return SlackNotifier(db_path, api_url="https://slack.test/post", background=False, session=session)


def test_posts_to_configured_channel(repo, db_path):
    repo.set_integration("L1", slack_bot_token="xoxb-1", slack_channel_transactions="C_TX")
    session = _Session()
    _notifier(db_path, session).notify("L1", NOTIFY_TRANSACTIONS, "New Bid!")

    [(url, kwargs)] = session.posts
    assert url == "https://slack.test/post"
    assert kwargs["headers"] == {"Authorization": "Bearer xoxb-1"}
    assert kwargs["json"] == {"channel": "C_TX", "text": "New Bid!"}


def test_unconfigured_league_is_silent(repo, db_path):
    session = _Session()
    _notifier(db_path, session).notify("L1", NOTIFY_TRANSACTIONS, "hello")
    assert session.posts == []

    repo.set_integration("L1", slack_bot_token="xoxb-1", slack_channel_transactions="C_TX")
    _notifier(db_path, session).notify("L1", NOTIFY_TRADE_BLOCK, "hello")
    _notifier(db_path, session).notify("L1", "unknown", "hello")
    assert session.posts == []


def test_delivery_failures_are_logged_not_raised(repo, db_path, caplog):
    repo.set_integration("L1", slack_bot_token="xoxb-1", slack_channel_transactions="C_TX")

    with caplog.at_level(logging.WARNING, logger="notifications"):
        _notifier(db_path, _Session(exc=requests.ConnectionError("down"))).notify("L1", NOTIFY_TRANSACTIONS, "x")
        _notifier(db_path, _Session(_Response({}, status=500))).notify("L1", NOTIFY_TRANSACTIONS, "x")
        _notifier(db_path, _Session(_Response({"ok": False, "error": "channel_not_found"}))).notify("L1", NOTIFY_TRANSACTIONS, "x")

    messages = [r.getMessage() for r in caplog.records]
    assert sum("delivery failed" in m for m in messages) == 2
    assert any("channel_not_found" in m for m in messages)
