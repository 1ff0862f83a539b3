import json

import pytest

from miro import config, gateway
from miro.errors import GatewayError
from miro.models import Message, Sentiment, UserProfile

PROFILE = UserProfile(name="Asha", age=27, gender="female")


def test_chat_response_sends_profile_language_and_recent_history(fake_client):
    client = fake_client("  That sounds hard. I'm here with you.  ")
    history = [Message(str(i), f"m{i}", "user" if i % 2 else "ai") for i in range(6)]

    reply = gateway.get_chat_response(PROFILE, history, "I feel low", "Hindi", history_limit=3)

    assert reply == "That sounds hard. I'm here with you."
    sent = client.calls[0]["messages"]
    assert sent[0]["role"] == "system"
    assert "Asha" in sent[0]["content"] and "27" in sent[0]["content"]
    assert "respond ONLY in Hindi" in sent[0]["content"]
    assert [m["content"] for m in sent[1:-1]] == ["m3", "m4", "m5"]
    assert [m["role"] for m in sent[1:-1]] == ["user", "assistant", "user"]
    assert sent[-1] == {"role": "user", "content": "I feel low"}
    assert client.calls[0]["model"] == config.MODEL


def test_chat_response_uses_configured_history_limit(fake_client, monkeypatch):
    monkeypatch.setattr(config, "CHAT_HISTORY_LIMIT", 0)
    client = fake_client("ok")
    gateway.get_chat_response(PROFILE, [Message("1", "old", "user")], "new", "English")
    assert len(client.calls[0]["messages"]) == 2


def test_chat_response_falls_back(fake_client):
    fake_client(RuntimeError("503"))
    assert gateway.get_chat_response(PROFILE, [], "hi", "English") == gateway.CHAT_FALLBACK

    fake_client(None)
    assert gateway.get_chat_response(PROFILE, [], "hi", "English", fallback="local") == "local"


def test_missing_api_key_means_fallbacks(monkeypatch):
    monkeypatch.setattr(gateway, "_client", None)
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")

    assert not gateway.is_configured()
    with pytest.raises(GatewayError):
        gateway.get_client()
    assert gateway.get_affirmation("English") == gateway.AFFIRMATION_FALLBACK
    assert gateway.check_for_crisis("help") is False


def test_smart_replies_are_capped_at_three(fake_client):
    client = fake_client(json.dumps({"replies": ["a", "b", "c", "d"]}))
    assert gateway.get_smart_replies("How was your day?", "Tamil") == ["a", "b", "c"]

    response_format = client.calls[0]["response_format"]
    assert response_format["type"] == "json_schema"
    assert response_format["json_schema"]["schema"] == gateway.SMART_REPLIES_SCHEMA
    assert "Tamil" in client.calls[0]["messages"][0]["content"]


def test_smart_replies_accept_bare_array_and_reject_other_shapes(fake_client):
    fake_client('["one", "two"]')
    assert gateway.get_smart_replies("x", "English") == ["one", "two"]

    fake_client('{"replies": "one"}')
    assert gateway.get_smart_replies("x", "English") == []


def test_smart_replies_fallback_on_bad_json(fake_client):
    fake_client("Sure! Here are some ideas")
    assert gateway.get_smart_replies("x", "English") == gateway.SMART_REPLIES_FALLBACK


@pytest.mark.parametrize("answer, expected", [
    ("positive", Sentiment.POSITIVE),
    ("  Positive\n", Sentiment.POSITIVE),
    ("negative", Sentiment.NEGATIVE),
    ("mixed", Sentiment.NEGATIVE),
    (RuntimeError("timeout"), Sentiment.NEGATIVE),
])
def test_journal_sentiment(fake_client, answer, expected):
    fake_client(answer)
    assert gateway.get_journal_sentiment("Went for a walk") is expected


@pytest.mark.parametrize("answer, expected", [
    ("true", True),
    ("TRUE ", True),
    ("false", False),
    ("true, because...", False),
    (RuntimeError("timeout"), False),
])
def test_crisis_check(fake_client, answer, expected):
    fake_client(answer)
    assert gateway.check_for_crisis("message") is expected


def test_crisis_check_is_deterministic(fake_client):
    client = fake_client("false")
    gateway.check_for_crisis("message")
    assert client.calls[0]["temperature"] == 0


def test_tip_and_affirmation(fake_client):
    client = fake_client("Drink some water.", "", RuntimeError("down"))
    assert gateway.get_wellness_tip("Kannada") == "Drink some water."
    assert "Kannada" in client.calls[0]["messages"][0]["content"]
    assert gateway.get_wellness_tip("English") == gateway.WELLNESS_TIP_FALLBACK
    assert gateway.get_affirmation("English") == gateway.AFFIRMATION_FALLBACK


def test_community_posts_drop_malformed_items(fake_client):
    fake_client(json.dumps({"posts": [
        {"username": "HopefulSoul", "content": "Walked today."},
        {"username": "NoContent"},
        "just text",
        {"username": "QuietAchiever", "content": "Slept well."},
    ]}))
    assert gateway.get_community_posts("English") == [
        {"username": "HopefulSoul", "content": "Walked today."},
        {"username": "QuietAchiever", "content": "Slept well."},
    ]


def test_community_posts_fallback_is_a_copy(fake_client):
    fake_client(RuntimeError("down"))
    posts = gateway.get_community_posts("English")
    assert posts == gateway.COMMUNITY_POSTS_FALLBACK
    posts[0]["username"] = "changed"
    assert gateway.COMMUNITY_POSTS_FALLBACK[0]["username"] == "BraveHeart"


def test_community_posts_non_list(fake_client):
    fake_client('{"posts": {}}')
    assert gateway.get_community_posts("English") == []
