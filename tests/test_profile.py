import pytest

from miro.errors import ProfileError
from miro.models import UserProfile
from miro.profile import PROFILE_KEY, build_profile, chat_history_key, rename_profile, update_profile
from miro.storage import PersistedState


def test_build_profile_normalises_input():
    assert build_profile("  Asha ", "27", "female") == UserProfile("Asha", 27, "female")
    assert build_profile("Ravi", 31, "prefer not to say").age == 31


@pytest.mark.parametrize("name, age, gender", [
    ("", "20", "male"),
    ("Asha", "", "female"),
    ("Asha", "twenty", "female"),
    ("Asha", "0", "female"),
    ("Asha", "-3", "female"),
    ("Asha", "20", None),
])
def test_build_profile_rejects_incomplete_forms(name, age, gender):
    with pytest.raises(ProfileError):
        build_profile(name, age, gender)


def test_profile_error_is_a_value_error():
    with pytest.raises(ValueError):
        build_profile(None, None, None)


def test_history_key():
    assert chat_history_key("Asha") == "chatHistory_Asha"


def test_rename_moves_history(store):
    old = PersistedState(store, chat_history_key("Asha"), [])
    old.set([{"id": "1", "text": "hi", "sender": "user"}])

    assert rename_profile(store, "Asha", "Asha K")

    assert store.get_item("chatHistory_Asha") is None
    moved = PersistedState(store, chat_history_key("Asha K"), [])
    assert moved.value == [{"id": "1", "text": "hi", "sender": "user"}]


def test_rename_without_history_or_same_name_is_noop(store):
    assert not rename_profile(store, "Asha", "Ravi")
    assert store.keys() == []

    store.set_item("chatHistory_Asha", "[]")
    assert not rename_profile(store, "Asha", "Asha")
    assert store.keys() == ["chatHistory_Asha"]


def test_edit_profile_saves_and_moves_history(store):
    profile_cell = PersistedState(store, PROFILE_KEY, None)
    profile_cell.set(UserProfile("Asha", 27, "female").to_dict())
    store.set_item("chatHistory_Asha", '[{"id": "1", "text": "hi", "sender": "user"}]')

    updated = update_profile(store, UserProfile("Asha", 27, "female"), " Asha K ", "28", "other")

    assert updated == UserProfile("Asha K", 28, "other")
    assert profile_cell.value == {"name": "Asha K", "age": 28, "gender": "other"}
    assert store.keys() == ["chatHistory_Asha K", "userProfile"]


def test_invalid_edit_changes_nothing(store):
    store.set_item("chatHistory_Asha", "[]")
    with pytest.raises(ProfileError):
        update_profile(store, UserProfile("Asha", 27, "female"), "Ravi", "abc", "male")
    assert store.keys() == ["chatHistory_Asha"]
