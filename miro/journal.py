import datetime
import logging
from typing import List

import altair as alt
import pandas as pd

from miro import config
from miro.models import JournalEntry, Mood, MoodEntry, Sentiment

logger = logging.getLogger(__name__)

MOOD_OPTIONS = [Mood.HAPPY, Mood.CALM, Mood.OKAY, Mood.ANXIOUS, Mood.SAD]
MOOD_EMOJIS = {
    Mood.HAPPY: "😄",
    Mood.CALM: "😊",
    Mood.OKAY: "🙂",
    Mood.ANXIOUS: "😟",
    Mood.SAD: "😢",
}
MOOD_COLORS = {
    Mood.HAPPY: "#4ade80",
    Mood.CALM: "#60a5fa",
    Mood.OKAY: "#facc15",
    Mood.ANXIOUS: "#c084fc",
    Mood.SAD: "#9ca3af",
}
MOOD_LEVELS = {
    Mood.HAPPY: 5,
    Mood.CALM: 4,
    Mood.OKAY: 3,
    Mood.ANXIOUS: 2,
    Mood.SAD: 1,
}
NO_MOOD_COLOR = "#e5e7eb"
WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def to_iso(moment: datetime.datetime) -> str:
    return moment.astimezone(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime.datetime:
    moment = datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment


def load_entries(raw) -> List[JournalEntry]:
    entries = []
    for item in raw or []:
        try:
            entry = JournalEntry.from_dict(item)
            parse_iso(entry.date)
        except (AttributeError, KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed journal entry: %r", item)
            continue
        entries.append(entry)
    return entries


def load_moods(raw) -> List[MoodEntry]:
    moods = []
    for item in raw or []:
        try:
            moods.append(MoodEntry.from_dict(item))
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed mood entry: %r", item)
    return moods


def prune_expired(entries: List[JournalEntry], now=None) -> List[JournalEntry]:
    """Drop negative entries older than the retention window; positive ones stay."""
    now = now or utcnow()
    ttl = datetime.timedelta(hours=config.NEGATIVE_ENTRY_TTL_HOURS)
    kept = []
    for entry in entries:
        if entry.sentiment == Sentiment.NEGATIVE:
            try:
                age = now - parse_iso(entry.date)
            except ValueError:
                logger.warning("Dropping negative entry %s with unreadable date %r", entry.id, entry.date)
                continue
            if age >= ttl:
                continue
        kept.append(entry)
    return kept


def new_entry(content: str, sentiment: Sentiment, now=None) -> JournalEntry:
    now = now or utcnow()
    return JournalEntry(
        id=str(int(now.timestamp() * 1000)),
        date=to_iso(now),
        content=content,
        sentiment=sentiment,
    )


def positive_entries(entries: List[JournalEntry]) -> List[JournalEntry]:
    """Positive reflections, newest first."""
    positive = [e for e in entries if e.sentiment == Sentiment.POSITIVE]
    return sorted(positive, key=lambda e: parse_iso(e.date), reverse=True)


def upsert_mood(moods: List[MoodEntry], date: str, mood: Mood) -> List[MoodEntry]:
    """Record ``mood`` for ``date``; a later pick replaces the earlier one in place."""
    updated = list(moods)
    for i, existing in enumerate(updated):
        if existing.date == date:
            updated[i] = MoodEntry(date=date, mood=mood)
            return updated
    updated.append(MoodEntry(date=date, mood=mood))
    return updated


def week_data(moods: List[MoodEntry], today=None, t=None):
    """The seven days ending ``today`` with whatever mood was logged for each.

    Day labels come from ``journal.mood.days.*`` when a translator is given.
    """
    today = today or datetime.date.today()
    mood_map = {m.date: m.mood for m in moods}
    days = []
    for offset in range(6, -1, -1):
        day = today - datetime.timedelta(days=offset)
        date_str = day.isoformat()
        label = WEEKDAYS[day.weekday()]
        if t is not None:
            label = t(f"journal.mood.days.{label.lower()}")
        days.append({"date": date_str, "day": label, "mood": mood_map.get(date_str)})
    return days


def weekly_mood_frame(week) -> pd.DataFrame:
    rows = []
    for day in week:
        mood = day["mood"]
        rows.append({
            "date": day["date"],
            "day": day["day"],
            "mood": mood.value if mood else "",
            "emoji": MOOD_EMOJIS[mood] if mood else "🤔",
            # Empty days get a sliver so the axis stays readable
            "height": MOOD_LEVELS[mood] * 100 / 5 if mood else 2,
            "color": MOOD_COLORS[mood] if mood else NO_MOOD_COLOR,
        })
    return pd.DataFrame(rows, columns=["date", "day", "mood", "emoji", "height", "color"])


def weekly_mood_chart(week, title="Weekly Mood Graph") -> alt.Chart:
    data = weekly_mood_frame(week)
    return alt.Chart(data).mark_bar(cornerRadiusTopLeft=6, cornerRadiusTopRight=6).encode(
        # Seven consecutive days never repeat a weekday label
        x=alt.X("day:N", title=None, sort=None),
        y=alt.Y("height:Q", title=None, scale=alt.Scale(domain=[0, 100]), axis=None),
        color=alt.Color("color:N", scale=None),
        tooltip=["date:N", "mood:N", "emoji:N"],
    ).properties(
        title=title
    )
