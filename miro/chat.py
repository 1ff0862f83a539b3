"""Conversation log operations shared by the Chat and History panels.

The log is a list of message dicts held in a ``PersistedState``. Messages are
appended or deleted, never edited in place.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import List, Optional

from miro import gateway
from miro.models import Message, UserProfile
from miro.storage import PersistedState

logger = logging.getLogger(__name__)

WELCOME_ID = "initial-welcome"


@dataclass
class SendResult:
    crisis: bool = False
    user_message: Optional[Message] = None
    reply: Optional[Message] = None


def new_message_id() -> str:
    return uuid.uuid4().hex


def load_messages(state: PersistedState) -> List[Message]:
    messages = []
    for item in state.value or []:
        try:
            messages.append(Message.from_dict(item))
        except (KeyError, TypeError):
            logger.warning("Skipping malformed message in %s: %r", state.key, item)
    return messages


def welcome_message(t, name: str) -> Message:
    return Message(id=WELCOME_ID, text=t("chat.welcomeMessage", name=name), sender="ai")


def ensure_welcome(state: PersistedState, t, name: str) -> None:
    if not state.value:
        state.set([welcome_message(t, name).to_dict()])


def _append(state: PersistedState, message: Message):
    state.set(lambda current: list(current or []) + [message.to_dict()])


def send_message(state: PersistedState, profile: UserProfile, text: str, language: str, t) -> SendResult:
    """Run one chat turn.

    A message flagged as a crisis is not recorded; the caller shows the
    emergency dialog instead.
    """
    text = (text or "").strip()
    if not text:
        return SendResult()

    if gateway.check_for_crisis(text):
        logger.info("Crisis indicators detected; opening emergency support")
        return SendResult(crisis=True)

    history = load_messages(state)
    user_message = Message(id=new_message_id(), text=text, sender="user")
    _append(state, user_message)

    reply_text = gateway.get_chat_response(profile, history, text, language, fallback=t("chat.error"))
    reply = Message(id=new_message_id(), text=reply_text, sender="ai")
    _append(state, reply)
    return SendResult(user_message=user_message, reply=reply)


def suggest_replies(messages: List[Message], language: str) -> List[str]:
    if not messages or messages[-1].sender != "ai":
        return []
    return gateway.get_smart_replies(messages[-1].text, language)


def clear_history(state: PersistedState, t, name: str, keep_welcome: bool = True) -> None:
    """Empty the log, leaving only the welcome message unless ``keep_welcome`` is off."""
    if keep_welcome:
        state.set([welcome_message(t, name).to_dict()])
    else:
        state.set([])


def delete_message(state: PersistedState, message_id: str) -> None:
    state.set(lambda current: [
        m for m in (current or []) if isinstance(m, dict) and str(m.get("id")) != message_id
    ])


def search_messages(messages: List[Message], query: str) -> List[Message]:
    query = (query or "").strip().casefold()
    if not query:
        return list(messages)
    return [m for m in messages if query in m.text.casefold()]
