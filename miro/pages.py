"""Streamlit panels: onboarding, chat, journal, tips, community and history."""
import datetime
import logging

import streamlit as st

from miro import chat, gateway, journal
from miro.errors import ProfileError
from miro.models import HELPLINES, Mood, UserProfile
from miro.profile import GENDER_OPTIONS, PROFILE_KEY, build_profile, chat_history_key, update_profile
from miro.storage import KeyValueStore, PersistedState

logger = logging.getLogger(__name__)

JOURNAL_KEY = "journalEntries"
MOOD_KEY = "moodEntries"


# ---------- SESSION HELPERS ----------
def get_cell(store: KeyValueStore, key: str, initial=None) -> PersistedState:
    """One PersistedState per key per browser session."""
    cells = st.session_state.setdefault("_miro_cells", {})
    cell = cells.get(key)
    if cell is None or cell.store is not store:
        cell = PersistedState(store, key, initial)
        cells[key] = cell
    return cell


def open_emergency():
    st.session_state.show_emergency = True


def _gender_label(t, value):
    labels = {v: t(k) for v, k in GENDER_OPTIONS}
    return labels.get(value, value)


# ---------- DIALOGS ----------
def emergency_dialog(t):
    def body():
        st.write(t("modal.emergency.subtitle"))
        for line in HELPLINES:
            with st.container(border=True):
                st.markdown(f"**{line.name}**")
                st.markdown(f"### [{line.number}](tel:{line.number})")
                st.caption(line.description)
        if st.button(t("modal.emergency.close"), type="primary", use_container_width=True):
            st.rerun()

    st.dialog(t("modal.emergency.title"))(body)()


def edit_profile_dialog(t, store: KeyValueStore, profile: UserProfile):
    def body():
        with st.form("edit_profile_form"):
            name = st.text_input(t("modal.editProfile.name"), value=profile.name, key="edit_profile_name")
            age = st.number_input(t("modal.editProfile.age"), min_value=1, step=1, value=max(profile.age, 1))
            values = [v for v, _ in GENDER_OPTIONS]
            gender = st.selectbox(
                t("modal.editProfile.gender"),
                values,
                index=values.index(profile.gender) if profile.gender in values else 0,
                format_func=lambda v: _gender_label(t, v),
            )
            col1, col2 = st.columns(2)
            cancelled = col1.form_submit_button(t("modal.editProfile.cancel"), use_container_width=True)
            saved = col2.form_submit_button(t("modal.editProfile.save"), type="primary",
                                            use_container_width=True)
        if cancelled:
            st.rerun()
        if saved:
            try:
                update_profile(store, profile, name, age, gender)
            except ProfileError:
                st.error(t("onboarding.invalid"))
                return
            st.rerun()

    st.dialog(t("modal.editProfile.title"))(body)()


# ---------- ONBOARDING ----------
def onboarding_page(t, store: KeyValueStore):
    st.title(t("onboarding.welcome"))
    st.write(t("onboarding.subtitle"))

    with st.form("onboarding_form"):
        name = st.text_input(t("onboarding.name.label"), placeholder=t("onboarding.name.placeholder"),
                             key="onboarding_name")
        age = st.text_input(t("onboarding.age.label"), placeholder=t("onboarding.age.placeholder"),
                            key="onboarding_age")
        gender = st.selectbox(
            t("onboarding.gender.label"),
            [v for v, _ in GENDER_OPTIONS],
            index=None,
            placeholder=t("onboarding.gender.select"),
            format_func=lambda v: _gender_label(t, v),
            key="onboarding_gender",
        )
        submitted = st.form_submit_button(t("onboarding.submit"), type="primary", use_container_width=True)

    if submitted:
        try:
            profile = build_profile(name, age, gender)
        except ProfileError:
            st.warning(t("onboarding.invalid"))
            return
        get_cell(store, PROFILE_KEY).set(profile.to_dict())
        logger.info("Onboarding complete")
        st.rerun()


# ---------- CHAT ----------
def _send(t, store, profile, language, text):
    state = get_cell(store, chat_history_key(profile.name), [])
    with st.spinner(t("chat.thinking")):
        result = chat.send_message(state, profile, text, language, t)
    if result.crisis:
        open_emergency()
    st.rerun()


def _smart_replies(messages, language):
    # Cache per last AI message so reruns don't re-query the model
    last = messages[-1] if messages else None
    cache_key = (last.id if last else None, language)
    cached = st.session_state.get("smart_replies")
    if cached and cached[0] == cache_key:
        return cached[1]
    replies = chat.suggest_replies(messages, language)
    st.session_state.smart_replies = (cache_key, replies)
    return replies


def chat_page(t, store: KeyValueStore, profile: UserProfile, language: str):
    state = get_cell(store, chat_history_key(profile.name), [])
    chat.ensure_welcome(state, t, profile.name)

    head, clear = st.columns([5, 1])
    head.header(t("chat.header"))
    with clear.popover("🗑️", help=t("chat.clearHistory.button")):
        st.write(t("chat.clearHistory.confirm"))
        if st.button(t("chat.clearHistory.button"), key="chat_clear", type="primary"):
            chat.clear_history(state, t, profile.name)
            st.rerun()

    query = st.text_input("search", placeholder=t("chat.search.placeholder"), label_visibility="collapsed")
    messages = chat.load_messages(state)
    shown = chat.search_messages(messages, query)
    if query and not shown:
        st.info(t("chat.search.empty"))

    for message in shown:
        with st.chat_message("assistant" if message.sender == "ai" else "user"):
            st.markdown(message.text)

    if not query:
        replies = _smart_replies(messages, language)
        if replies:
            cols = st.columns(len(replies))
            for i, reply in enumerate(replies):
                if cols[i].button(reply, key=f"smart_reply_{i}", use_container_width=True):
                    _send(t, store, profile, language, reply)

    if prompt := st.chat_input(t("chat.placeholder")):
        _send(t, store, profile, language, prompt)


# ---------- JOURNAL ----------
def _mood_tracker(t, moods_state: PersistedState):
    moods = journal.load_moods(moods_state.value)
    week = journal.week_data(moods, t=t)

    st.subheader(t("journal.mood.weeklyGraph"))
    st.altair_chart(journal.weekly_mood_chart(week, title=""), use_container_width=True)
    st.caption(t("journal.mood.aria.graph"))

    today = datetime.date.today().isoformat()
    todays_mood = next((m.mood for m in moods if m.date == today), None)
    st.markdown(f"**{t('journal.mood.today')}**")
    cols = st.columns(len(journal.MOOD_OPTIONS))
    for col, mood in zip(cols, journal.MOOD_OPTIONS):
        selected = mood == todays_mood
        if col.button(journal.MOOD_EMOJIS[mood], key=f"mood_{mood.value}", help=mood.value,
                      type="primary" if selected else "secondary", use_container_width=True):
            moods_state.set(lambda current: [
                m.to_dict() for m in journal.upsert_mood(journal.load_moods(current), today, Mood(mood))
            ])
            st.rerun()
    if todays_mood:
        st.caption(t("journal.mood.aria.moodLogged", mood=todays_mood.value))


def journal_page(t, store: KeyValueStore, language: str):
    entries_state = get_cell(store, JOURNAL_KEY, [])
    moods_state = get_cell(store, MOOD_KEY, [])

    entries = journal.load_entries(entries_state.value)
    kept = journal.prune_expired(entries)
    if len(kept) != len(entries):
        logger.info("Cleared %d expired negative journal entries", len(entries) - len(kept))
        entries_state.set([e.to_dict() for e in kept])
        entries = kept

    st.header(t("journal.title"))

    with st.container(border=True):
        _mood_tracker(t, moods_state)

    with st.container(border=True):
        st.subheader(t("journal.thoughts.title"))
        st.write(t("journal.thoughts.subtitle"))
        with st.form("journal_form", clear_on_submit=True):
            content = st.text_area("thoughts", placeholder=t("journal.thoughts.placeholder"),
                                   height=150, label_visibility="collapsed")
            submitted = st.form_submit_button(t("journal.thoughts.save"), type="primary")
        if submitted and content.strip():
            with st.spinner(t("journal.thoughts.saving")):
                sentiment = gateway.get_journal_sentiment(content)
            entry = journal.new_entry(content, sentiment)
            entries_state.set(lambda current: list(current or []) + [entry.to_dict()])
            st.rerun()

    with st.container(border=True):
        st.subheader(t("journal.reflections.title"))
        positive = journal.positive_entries(entries)
        if not positive:
            st.info(t("journal.reflections.empty"))
        for entry in positive:
            when = journal.parse_iso(entry.date).astimezone()
            st.markdown(f"**{when.strftime('%A, %B %d, %Y')}**")
            st.write(entry.content)


# ---------- TIPS ----------
def _cached(name, language, loader, refresh=False):
    cache = st.session_state.setdefault("generated", {})
    key = (name, language)
    if refresh or key not in cache:
        cache[key] = loader(language)
    return cache[key]


def tips_page(t, language: str):
    st.header(t("tips.title"))

    with st.container(border=True):
        st.subheader(t("tips.affirmation.title"))
        refresh = st.button(t("tips.affirmation.new"), key="new_affirmation")
        with st.spinner(t("tips.affirmation.loading")):
            affirmation = _cached("affirmation", language, gateway.get_affirmation, refresh)
        st.markdown(f"> _\"{affirmation}\"_")

    with st.container(border=True):
        st.subheader(t("tips.wellness.title"))
        refresh = st.button(t("tips.wellness.new"), key="new_tip")
        with st.spinner(t("tips.wellness.loading")):
            tip = _cached("tip", language, gateway.get_wellness_tip, refresh)
        st.write(tip)


# ---------- COMMUNITY ----------
def community_page(t, language: str):
    head, button = st.columns([4, 1])
    head.header(t("community.title"))
    refresh = button.button(t("community.refresh"), type="primary", use_container_width=True)

    with st.spinner(t("community.refreshing") if refresh else t("community.loading")):
        posts = _cached("community", language, gateway.get_community_posts, refresh)

    if not posts:
        st.info(t("community.empty"))
    for post in posts:
        with st.container(border=True):
            st.markdown(f"👤 **{post['username']}**")
            st.write(post["content"])


# ---------- HISTORY ----------
def history_page(t, store: KeyValueStore, profile: UserProfile):
    state = get_cell(store, chat_history_key(profile.name), [])
    messages = chat.load_messages(state)

    head, clear = st.columns([4, 1])
    head.header(t("nav.history"))
    with clear.popover(t("chat.clearHistory.button"), disabled=not messages, use_container_width=True):
        st.write(t("chat.clearHistory.confirm"))
        if st.button(t("chat.clearHistory.button"), key="history_clear", type="primary"):
            chat.clear_history(state, t, profile.name, keep_welcome=False)
            st.rerun()

    if not messages:
        st.info(t("history.empty"))
        return

    for message in messages:
        text_col, delete_col = st.columns([8, 1])
        with text_col:
            with st.chat_message("assistant" if message.sender == "ai" else "user"):
                st.markdown(message.text)
        with delete_col.popover("🗑️", help=t("chat.deleteMessage.button")):
            st.write(t("chat.deleteMessage.confirm"))
            if st.button(t("chat.deleteMessage.button"), key=f"delete_{message.id}", type="primary"):
                chat.delete_message(state, message.id)
                st.rerun()
