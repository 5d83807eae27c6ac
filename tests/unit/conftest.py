"""Shared fakes for login handshake unit tests.

The handshake talks to the network, the terminal and the filesystem only
through small collaborator objects. These fakes script their behavior and
record what the handshake did with them.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any
from xml.sax.saxutils import quoteattr

import pytest

from passgate.config import PassgateSettings
from passgate.store import ConfigStore
from passgate.trust import TrustDeviceManager

DERIVED_KEY = bytes(range(32))


@dataclass
class PostedRequest:
    server: str
    path: str
    fields: list[tuple[str, str]]
    session: Any = None

    @property
    def data(self) -> dict[str, str]:
        return dict(self.fields)


class FakeTransport:
    """Transport returning scripted replies in order.

    ``None`` entries (and running out of replies) simulate transport failure.
    """

    def __init__(self, replies: list[str | None] | None = None) -> None:
        self.replies = list(replies or [])
        self.calls: list[PostedRequest] = []

    def post(self, server, path, fields, session=None):
        self.calls.append(PostedRequest(server, path, list(fields.items()), session))
        if not self.replies:
            return None
        return self.replies.pop(0)

    def login_calls(self) -> list[PostedRequest]:
        return [c for c in self.calls if c.path == "login.php"]


class FakePrompter:
    """Prompter answering with scripted codes; ``None`` means the user aborted."""

    def __init__(self, answers: list[str | None] | None = None) -> None:
        self.answers = list(answers or [])
        self.prompts: list[dict[str, Any]] = []

    def read_secret(self, label, error, description):
        self.prompts.append({"label": label, "error": error, "description": description})
        if not self.answers:
            return None
        return self.answers.pop(0)


class FakeStatus:
    """Status line recording every call, in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str | None]] = []
        self.ticks = 0
        self.shown = False

    def show(self, text: str) -> None:
        self.shown = True
        self.events.append(("show", text))

    def tick(self) -> None:
        self.ticks += 1
        self.events.append(("tick", None))

    def clear(self) -> None:
        self.shown = False
        self.events.append(("clear", None))


def _attrs(attrs: dict[str, str]) -> str:
    return "".join(f" {name}={quoteattr(value)}" for name, value in attrs.items())


def ok_reply(
    uid: str = "1001",
    sessionid: str = "sess-abc",
    token: str = "tok-xyz",
    **extra: str,
) -> str:
    attrs = {"uid": uid, "sessionid": sessionid, "token": token, **extra}
    return f"<response><ok{_attrs(attrs)}/></response>"


def error_reply(**attrs: str) -> str:
    return f"<response><error{_attrs(attrs)}/></response>"


@pytest.fixture
def replies() -> SimpleNamespace:
    """Builders for login endpoint XML replies."""
    return SimpleNamespace(ok=ok_reply, error=error_reply)


@pytest.fixture
def derived_key() -> bytes:
    return DERIVED_KEY


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def make_prompter():
    return FakePrompter


@pytest.fixture
def status() -> FakeStatus:
    return FakeStatus()


@pytest.fixture
def settings(isolated_config) -> PassgateSettings:
    return PassgateSettings(config_dir=isolated_config)


@pytest.fixture
def store(settings: PassgateSettings) -> ConfigStore:
    return ConfigStore(settings.store_dir)


@pytest.fixture
def fake_uname():
    return lambda: SimpleNamespace(node="workstation", system="Linux", release="6.8.0")


@pytest.fixture
def trust_manager(store: ConfigStore, fake_uname) -> TrustDeviceManager:
    return TrustDeviceManager(store, uname=fake_uname)
