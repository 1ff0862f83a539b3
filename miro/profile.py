import json
import logging

from miro.errors import ProfileError
from miro.models import UserProfile
from miro.storage import KeyValueStore

logger = logging.getLogger(__name__)

PROFILE_KEY = "userProfile"
LANGUAGE_KEY = "userLanguage"

# (stored value, translation key)
GENDER_OPTIONS = [
    ("female", "onboarding.gender.female"),
    ("male", "onboarding.gender.male"),
    ("non-binary", "onboarding.gender.non-binary"),
    ("other", "onboarding.gender.other"),
    ("prefer not to say", "onboarding.gender.preferNotToSay"),
]


def chat_history_key(name: str) -> str:
    return f"chatHistory_{name}"


def build_profile(name, age, gender) -> UserProfile:
    """Validate the onboarding / edit-profile form."""
    name = (name or "").strip()
    gender = (gender or "").strip()
    if not name:
        raise ProfileError("name is required")
    if not gender:
        raise ProfileError("gender is required")
    try:
        age = int(str(age).strip())
    except (TypeError, ValueError):
        raise ProfileError(f"age must be a whole number, got {age!r}")
    if age < 1:
        raise ProfileError("age must be at least 1")
    return UserProfile(name=name, age=age, gender=gender)


def rename_profile(store: KeyValueStore, old_name: str, new_name: str) -> bool:
    """Move the chat history stored under ``old_name`` to ``new_name``.

    Returns True when history was moved.
    """
    if old_name == new_name:
        return False
    old_key, new_key = chat_history_key(old_name), chat_history_key(new_name)
    history = store.get_item(old_key)
    if not history:
        return False
    store.set_item(new_key, history)
    store.remove_item(old_key)
    logger.info("Moved chat history from %s to %s", old_key, new_key)
    return True


def update_profile(store: KeyValueStore, current: UserProfile, name, age, gender) -> UserProfile:
    """Apply the edit-profile form: validate, carry the chat history over, save."""
    updated = build_profile(name, age, gender)
    rename_profile(store, current.name, updated.name)
    store.set_item(PROFILE_KEY, json.dumps(updated.to_dict()))
    return updated
