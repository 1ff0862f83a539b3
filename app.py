# app.py
import html
import logging

import streamlit as st

from miro import config, gateway, pages, router
from miro.i18n import Translator
from miro.models import UserProfile
from miro.profile import LANGUAGE_KEY, PROFILE_KEY
from miro.storage import KeyValueStore

config.configure_logging()
logger = logging.getLogger("miro.app")


@st.cache_resource
def get_store(path):
    """One store per server process, shared by every browser session."""
    logger.info("Opening key-value store at %s", path)
    return KeyValueStore(path)


def get_translator(language_state):
    translator = st.session_state.get("translator")
    if translator is None or translator.language_full_name != language_state.value:
        translator = Translator(language_state.value, on_language_change=language_state.set)
        st.session_state.translator = translator
    return translator


def language_selector(translator):
    t = translator.t
    current = translator.language_full_name
    choice = st.selectbox(
        t("sidebar.language"),
        config.LANGUAGES,
        index=config.LANGUAGES.index(current) if current in config.LANGUAGES else 0,
    )
    if choice != current:
        translator.set_language(choice)
        st.rerun()


def sidebar(translator, profile: UserProfile):
    t = translator.t
    with st.sidebar:
        st.title("🌿 Miro")
        labels = router.nav_labels(t)
        st.radio("Navigation", router.VIEWS, format_func=labels.get, key="active_view",
                 label_visibility="collapsed")
        st.divider()
        language_selector(translator)
        st.markdown(f"👤 **{profile.name}**")
        if st.button(f"✏️ {t('sidebar.editProfile')}", use_container_width=True):
            st.session_state.show_edit_profile = True
        if st.button(t("sidebar.emergency"), type="primary", use_container_width=True):
            pages.open_emergency()
        if not gateway.is_configured():
            st.warning(t("sidebar.offline"))


def main():
    st.set_page_config(page_title="Miro", page_icon="🌿", layout="wide")

    store = get_store(config.DB_PATH)
    # Pick up writes from other server processes sharing the file
    store.poll()

    language_state = pages.get_cell(store, LANGUAGE_KEY, config.DEFAULT_LANGUAGE)
    translator = get_translator(language_state)
    t = translator.t

    profile_state = pages.get_cell(store, PROFILE_KEY, None)
    if not profile_state.value:
        with st.sidebar:
            language_selector(translator)
        pages.onboarding_page(t, store)
        return

    profile = UserProfile.from_dict(profile_state.value)
    language = translator.language_full_name
    sidebar(translator, profile)

    st.markdown(f"<p style='text-align:right'><b>{html.escape(t('sidebar.hello', name=profile.name))}</b></p>",
                unsafe_allow_html=True)

    if st.session_state.pop("show_emergency", False):
        pages.emergency_dialog(t)
    elif st.session_state.pop("show_edit_profile", False):
        pages.edit_profile_dialog(t, store, profile)

    # --- PAGE ROUTING ---
    view = router.resolve_view(st.session_state.get("active_view"))
    if view == "Journal":
        pages.journal_page(t, store, language)
    elif view == "Tips":
        pages.tips_page(t, language)
    elif view == "Community":
        pages.community_page(t, language)
    elif view == "History":
        pages.history_page(t, store, profile)
    else:
        pages.chat_page(t, store, profile, language)


if __name__ == "__main__":
    main()
