from types import SimpleNamespace

import pytest

from miro import gateway
from miro.i18n import Translator
from miro.storage import KeyValueStore


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeClient:
    def __init__(self, *replies):
        self.chat = SimpleNamespace(completions=FakeCompletions(replies))

    @property
    def calls(self):
        return self.chat.completions.calls


@pytest.fixture
def store(tmp_path):
    s = KeyValueStore(tmp_path / "miro.db")
    yield s
    s.close()


@pytest.fixture
def fake_client(monkeypatch):
    def install(*replies):
        client = FakeClient(*replies)
        monkeypatch.setattr(gateway, "_client", client)
        return client

    return install


@pytest.fixture
def t():
    return Translator("English").t
