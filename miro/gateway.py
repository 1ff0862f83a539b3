"""Prompts and response parsing for the hosted language model.

Each capability is a single function that builds a prompt, calls the model
and validates what comes back. None of them raise: on any failure they log
and return a fixed fallback so the UI always has something to show.
"""
import json
import logging
from typing import List, Optional, Sequence

from openai import OpenAI

from miro import config
from miro.errors import GatewayError
from miro.models import Message, Sentiment, UserProfile

logger = logging.getLogger(__name__)

CHAT_FALLBACK = "I'm having a little trouble connecting right now. Please try again in a moment."
SMART_REPLIES_FALLBACK = ["Tell me more.", "Suggest a calming exercise.", "I just want to vent."]
WELLNESS_TIP_FALLBACK = (
    "Breathe deeply. Inhale for 4 seconds, hold for 4, and exhale for 6. "
    "This can help calm your nervous system."
)
AFFIRMATION_FALLBACK = "I am worthy of peace and happiness."
COMMUNITY_POSTS_FALLBACK = [
    {"username": "BraveHeart",
     "content": "Today, I reminded myself that it's okay to not be okay. Taking it one step at a time."},
    {"username": "SunSeeker",
     "content": "Managed to get out for a bit of sunshine. It's the small things that make a big difference!"},
    {"username": "GrowthMindset",
     "content": "Journaling has been a game-changer for me. Writing things down really helps clear my head."},
]

SMART_REPLIES_SCHEMA = {
    "type": "object",
    "properties": {"replies": {"type": "array", "items": {"type": "string"}}},
    "required": ["replies"],
    "additionalProperties": False,
}

COMMUNITY_POSTS_SCHEMA = {
    "type": "object",
    "properties": {
        "posts": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "username": {"type": "string"},
                    "content": {"type": "string"},
                },
                "required": ["username", "content"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["posts"],
    "additionalProperties": False,
}

_client = None


def is_configured() -> bool:
    return _client is not None or bool(config.OPENAI_API_KEY)


def get_client():
    global _client
    if _client is None:
        if not config.OPENAI_API_KEY:
            raise GatewayError("OPENAI_API_KEY environment variable not set")
        _client = OpenAI(api_key=config.OPENAI_API_KEY, timeout=config.REQUEST_TIMEOUT)
    return _client


def set_client(client) -> None:
    """Swap the provider client (``None`` rebuilds it from config on next use)."""
    global _client
    _client = client


def _complete(messages, **kwargs) -> str:
    response = get_client().chat.completions.create(
        model=config.MODEL,
        messages=messages,
        **kwargs,
    )
    content = response.choices[0].message.content
    if content is None:
        raise GatewayError("model returned no content")
    return content.strip()


def _complete_json(prompt: str, name: str, schema: dict):
    text = _complete(
        [{"role": "user", "content": prompt}],
        response_format={
            "type": "json_schema",
            "json_schema": {"name": name, "strict": True, "schema": schema},
        },
    )
    return json.loads(text)


def _unwrap(data, field):
    # Structured output comes wrapped in an object; accept a bare array too.
    if isinstance(data, dict):
        return data.get(field)
    return data


def system_instruction(profile: UserProfile, language: str) -> str:
    return (
        "You are Miro, a compassionate and supportive AI mental health companion. "
        f"The user's name is {profile.name}, they are {profile.age} years old and identify as "
        f"{profile.gender}. Tailor your responses to be empathetic and relevant to their "
        "demographic. Always keep your replies gentle, encouraging, and concise, under 4 "
        "sentences. Do not give medical advice. Your purpose is to listen and provide a safe "
        f"space. Please respond ONLY in {language}."
    )


def _history_messages(history: Sequence[Message], limit: int):
    if limit <= 0:
        return []
    return [
        {"role": "assistant" if m.sender == "ai" else "user", "content": m.text}
        for m in list(history)[-limit:]
    ]


def get_chat_response(profile: UserProfile, history: Sequence[Message], message: str,
                      language: str, fallback: str = CHAT_FALLBACK,
                      history_limit: Optional[int] = None) -> str:
    """Reply to ``message`` as Miro, with the recent conversation as context."""
    limit = config.CHAT_HISTORY_LIMIT if history_limit is None else history_limit
    messages = [{"role": "system", "content": system_instruction(profile, language)}]
    messages.extend(_history_messages(history, limit))
    messages.append({"role": "user", "content": message})
    try:
        reply = _complete(messages)
        if not reply:
            raise GatewayError("empty chat reply")
        return reply
    except Exception:
        logger.exception("Error getting chat response")
        return fallback


def get_smart_replies(last_ai_message: str, language: str) -> List[str]:
    prompt = (
        "Based on the last AI response, suggest three short, distinct, and supportive follow-up "
        f"phrases a user might say. The last AI response was: \"{last_ai_message}\". "
        f"Respond with a JSON object whose \"replies\" array holds the phrases, translated into "
        f"{language}."
    )
    try:
        replies = _unwrap(_complete_json(prompt, "smart_replies", SMART_REPLIES_SCHEMA), "replies")
    except Exception:
        logger.exception("Error getting smart replies")
        return list(SMART_REPLIES_FALLBACK)
    if not isinstance(replies, list):
        return []
    return [str(r) for r in replies[:3]]


def get_journal_sentiment(text: str) -> Sentiment:
    """Classify a journal entry; anything unclear counts as negative."""
    prompt = (
        "Analyze the sentiment of this journal entry. Is it primarily positive, or negative? "
        "Respond with only the single word \"positive\" or \"negative\". "
        f"Entry: \"{text}\""
    )
    try:
        result = _complete([{"role": "user", "content": prompt}]).lower()
    except Exception:
        logger.exception("Error getting journal sentiment")
        return Sentiment.NEGATIVE
    if result == Sentiment.POSITIVE.value:
        return Sentiment.POSITIVE
    return Sentiment.NEGATIVE


def check_for_crisis(message: str) -> bool:
    """True only when the model answers exactly "true"; errors never trigger the modal."""
    prompt = (
        "Analyze the following user message for any indication of self-harm or immediate "
        "life-threatening crisis. Respond with only the single word \"true\" if it is a crisis, "
        "and \"false\" otherwise. Do not provide any explanation. "
        f"Message: \"{message}\""
    )
    try:
        result = _complete([{"role": "user", "content": prompt}], temperature=0, max_tokens=5)
    except Exception:
        logger.exception("Error checking for crisis")
        return False
    return result.lower() == "true"


def get_wellness_tip(language: str) -> str:
    prompt = f"Generate a short, practical mental wellness tip (2-3 sentences) in {language}."
    try:
        return _complete([{"role": "user", "content": prompt}]) or WELLNESS_TIP_FALLBACK
    except Exception:
        logger.exception("Error getting wellness tip")
        return WELLNESS_TIP_FALLBACK


def get_affirmation(language: str) -> str:
    prompt = f"Generate a positive daily affirmation (1 sentence) in {language}."
    try:
        return _complete([{"role": "user", "content": prompt}]) or AFFIRMATION_FALLBACK
    except Exception:
        logger.exception("Error getting affirmation")
        return AFFIRMATION_FALLBACK


def get_community_posts(language: str) -> List[dict]:
    prompt = (
        "Generate 5 short, anonymous, uplifting community posts about mental wellness wins in "
        f"{language}. Examples: \"I went for a walk today even when I didn't feel like it.\", "
        "\"I practiced deep breathing and it helped me calm down.\". Respond with a JSON object "
        "whose \"posts\" array holds objects with a \"username\" (a positive, generic name like "
        "'HopefulSoul' or 'QuietAchiever') and a \"content\" key."
    )
    try:
        posts = _unwrap(_complete_json(prompt, "community_posts", COMMUNITY_POSTS_SCHEMA), "posts")
    except Exception:
        logger.exception("Error getting community posts")
        return [dict(p) for p in COMMUNITY_POSTS_FALLBACK]
    if not isinstance(posts, list):
        return []
    return [
        {"username": p["username"], "content": p["content"]}
        for p in posts
        if isinstance(p, dict)
        and isinstance(p.get("username"), str)
        and isinstance(p.get("content"), str)
    ]
