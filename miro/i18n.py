"""UI translations with English fallback.

Strings are addressed by dotted paths (``"journal.mood.today"``). Lookup
tries the selected language first, then the built-in English dictionary,
and finally returns the key itself so a missing string never blanks the UI.
"""
import json
import logging
from pathlib import Path
from typing import Callable, Mapping, Optional

from miro import config

logger = logging.getLogger(__name__)

# Hardcoded English strings; also what every other language falls back to.
FALLBACK_TRANSLATIONS = {
    "onboarding": {
        "welcome": "Welcome to Miro",
        "subtitle": "Your personal space for mental wellness. Let's get to know you a little.",
        "name": {"label": "What should we call you?", "placeholder": "Enter your name"},
        "age": {"label": "How old are you?", "placeholder": "Enter your age"},
        "gender": {
            "label": "How do you identify?",
            "select": "Select your gender",
            "female": "Female",
            "male": "Male",
            "non-binary": "Non-binary",
            "other": "Other",
            "preferNotToSay": "Prefer not to say",
        },
        "submit": "Start My Journey",
        "invalid": "Please fill in every field. Age must be a whole number above zero.",
    },
    "nav": {
        "chat": "Chat",
        "journal": "Journal",
        "tips": "Tips",
        "community": "Community",
        "history": "History",
    },
    "sidebar": {
        "language": "Language",
        "editProfile": "Edit Profile",
        "hello": "Hello, {{name}}!",
        "emergency": "Emergency",
        "offline": "AI features are offline. Set OPENAI_API_KEY to enable them.",
    },
    "chat": {
        "header": "Chat with Miro",
        "welcomeMessage": "Hi {{name}}, how are you feeling today? Tell me about your day.",
        "error": "I'm having a little trouble connecting right now. Please try again in a moment.",
        "placeholder": "Type your message here...",
        "search": {"placeholder": "Search in conversation...", "empty": "No messages match your search."},
        "clearHistory": {
            "button": "Clear history",
            "confirm": "Are you sure you want to clear the entire chat history?",
        },
        "deleteMessage": {
            "button": "Delete message",
            "confirm": "Are you sure you want to delete this message?",
        },
        "thinking": "Miro is thinking...",
    },
    "history": {"empty": "Your chat history is empty."},
    "journal": {
        "title": "My Journal",
        "mood": {
            "weeklyGraph": "Weekly Mood Graph",
            "today": "How are you feeling today?",
            "noEntry": "No entry",
            "days": {
                "mon": "Mon", "tue": "Tue", "wed": "Wed", "thu": "Thu",
                "fri": "Fri", "sat": "Sat", "sun": "Sun",
            },
            "aria": {
                "graph": "A bar chart showing your mood for the last 7 days.",
                "moodLogged": "Mood logged as {{mood}}",
                "noMoodLogged": "No mood logged for this day",
            },
        },
        "thoughts": {
            "title": "What's on your mind?",
            "subtitle": "Negative entries are cleared after 24 hours.",
            "placeholder": "Write your thoughts here. It's a safe space.",
            "saving": "Saving...",
            "save": "Save Entry",
        },
        "reflections": {
            "title": "Positive Reflections",
            "empty": "Your positive journal entries will appear here. Keep writing!",
        },
    },
    "tips": {
        "title": "Wellness Hub",
        "affirmation": {
            "title": "Daily Affirmation",
            "loading": "Finding a positive thought for you...",
            "new": "New Affirmation",
        },
        "wellness": {"title": "Wellness Tip", "loading": "Loading a helpful tip...", "new": "New Tip"},
    },
    "community": {
        "title": "Community Stories",
        "refreshing": "Refreshing...",
        "refresh": "Refresh",
        "loading": "Loading community posts...",
        "empty": "Could not load any posts right now. Please try again.",
    },
    "modal": {
        "emergency": {
            "title": "Immediate Support Available",
            "subtitle": "If you are in crisis or distress, please reach out to one of these "
                        "24/7 helplines in India. You are not alone.",
            "close": "Close",
        },
        "editProfile": {
            "title": "Edit Your Profile",
            "name": "Name",
            "age": "Age",
            "gender": "Gender",
            "cancel": "Cancel",
            "save": "Save Changes",
        },
    },
}

LANGUAGE_MAP = {
    "English": "en",
    "Hindi": "hi",
    "Kannada": "kn",
    "Bengali": "bn",
    "Tamil": "ta",
    "Telugu": "te",
}


def language_code(full_name: str) -> str:
    return LANGUAGE_MAP.get(full_name, "en")


def load_translations(code: str, locales_dir=None) -> Mapping:
    """Return the dictionary for ``code``, or the English one if it can't be loaded."""
    if code == "en":
        return FALLBACK_TRANSLATIONS
    path = Path(locales_dir or config.LOCALES_DIR) / f"{code}.json"
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"{path} does not contain a JSON object")
        return data
    except (OSError, ValueError) as e:
        logger.error("Error loading translation file %s: %s", path, e)
        return FALLBACK_TRANSLATIONS


def _walk(tree, keys):
    node = tree
    for k in keys:
        if not isinstance(node, Mapping):
            return None
        node = node.get(k)
        if node is None:
            return None
    return node


def interpolate(text: str, replacements: Optional[Mapping[str, str]] = None) -> str:
    """Replace the first ``{{name}}`` placeholder for each replacement."""
    for name, value in (replacements or {}).items():
        text = text.replace("{{%s}}" % name, str(value), 1)
    return text


class Translator:
    """Resolves UI strings for one selected language."""

    def __init__(self, language: str = config.DEFAULT_LANGUAGE, locales_dir=None,
                 on_language_change: Optional[Callable[[str], None]] = None):
        self.locales_dir = locales_dir
        self.on_language_change = on_language_change
        self.fallback = FALLBACK_TRANSLATIONS
        self._load(language)

    def _load(self, full_name):
        self.language_full_name = full_name
        self.language = language_code(full_name)
        self.current = load_translations(self.language, self.locales_dir)

    def set_language(self, full_name: str):
        self._load(full_name)
        if self.on_language_change:
            self.on_language_change(full_name)

    def t(self, key: str, replacements: Optional[Mapping[str, str]] = None, **kwargs) -> str:
        keys = key.split(".")
        result = _walk(self.current, keys)
        if result is None:
            result = _walk(self.fallback, keys)
        if result is None:
            logger.warning("Translation key not found: %s", key)
            return key
        if kwargs:
            replacements = {**(replacements or {}), **kwargs}
        return interpolate(str(result), replacements)

    __call__ = t
