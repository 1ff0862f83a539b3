import json

import pytest

from miro import config
from miro.i18n import FALLBACK_TRANSLATIONS, Translator, interpolate, language_code, load_translations


@pytest.fixture
def locales(tmp_path):
    (tmp_path / "hi.json").write_text(json.dumps({
        "nav": {"chat": "चैट"},
        "sidebar": {"hello": "नमस्ते, {{name}}!"},
    }), encoding="utf-8")
    (tmp_path / "bn.json").write_text("{broken", encoding="utf-8")
    (tmp_path / "ta.json").write_text('["not", "an", "object"]', encoding="utf-8")
    return tmp_path


def _leaf_keys(tree, prefix=""):
    for key, value in tree.items():
        path = f"{prefix}{key}"
        if isinstance(value, dict):
            yield from _leaf_keys(value, path + ".")
        else:
            yield path


def test_english_lookup():
    t = Translator("English").t
    assert t("nav.journal") == "Journal"
    assert t("journal.mood.aria.graph").startswith("A bar chart")


def test_current_language_then_fallback(locales):
    t = Translator("Hindi", locales_dir=locales).t
    assert t("nav.chat") == "चैट"
    assert t("nav.history") == "History"


def test_missing_key_returns_key():
    t = Translator("English").t
    assert t("nav.settings") == "nav.settings"
    assert t("nav.chat.label") == "nav.chat.label"


def test_section_lookup_is_stringified():
    t = Translator("English").t
    assert t("history") == str(FALLBACK_TRANSLATIONS["history"])


def test_interpolation_with_mapping_and_keywords(locales):
    t = Translator("Hindi", locales_dir=locales).t
    assert t("sidebar.hello", {"name": "Asha"}) == "नमस्ते, Asha!"
    assert t("chat.welcomeMessage", name="Ravi").startswith("Hi Ravi,")


def test_interpolation_replaces_first_occurrence_only():
    assert interpolate("{{x}} and {{x}}", {"x": "1"}) == "1 and {{x}}"
    assert interpolate("no placeholders", {"x": "1"}) == "no placeholders"
    assert interpolate("{{mood}}", None) == "{{mood}}"


def test_language_codes():
    assert language_code("Telugu") == "te"
    assert language_code("Klingon") == "en"
    translator = Translator("Klingon")
    assert translator.language == "en"
    assert translator.t("nav.chat") == "Chat"


@pytest.mark.parametrize("code", ["kn", "bn", "ta"])
def test_unloadable_locale_falls_back_to_english(locales, code):
    assert load_translations(code, locales) is FALLBACK_TRANSLATIONS


def test_english_needs_no_file(tmp_path):
    assert load_translations("en", tmp_path) is FALLBACK_TRANSLATIONS


def test_set_language_reloads_and_notifies(locales):
    changes = []
    translator = Translator("English", locales_dir=locales, on_language_change=changes.append)
    translator.set_language("Hindi")
    assert translator.language == "hi"
    assert translator.language_full_name == "Hindi"
    assert translator("nav.chat") == "चैट"
    assert changes == ["Hindi"]


def test_shipped_locales_only_use_known_keys():
    known = set(_leaf_keys(FALLBACK_TRANSLATIONS))
    for path in sorted(config.LOCALES_DIR.glob("*.json")):
        data = load_translations(path.stem)
        assert data is not FALLBACK_TRANSLATIONS, path.name
        assert set(_leaf_keys(data)) <= known, path.name


def test_every_supported_language_has_a_locale_file():
    for name in config.LANGUAGES:
        code = language_code(name)
        if code != "en":
            assert (config.LOCALES_DIR / f"{code}.json").exists()
