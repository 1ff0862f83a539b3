from dataclasses import asdict, dataclass
from enum import Enum


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class Mood(str, Enum):
    HAPPY = "Happy"
    CALM = "Calm"
    OKAY = "Okay"
    ANXIOUS = "Anxious"
    SAD = "Sad"


@dataclass
class UserProfile:
    name: str
    age: int
    gender: str

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(name=data["name"], age=int(data["age"]), gender=data["gender"])


@dataclass
class Message:
    id: str
    text: str
    sender: str  # "user" or "ai"

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, data):
        return cls(id=str(data["id"]), text=data["text"], sender=data["sender"])


@dataclass
class JournalEntry:
    id: str
    date: str  # ISO-8601, UTC
    content: str
    sentiment: Sentiment

    def to_dict(self):
        return {
            "id": self.id,
            "date": self.date,
            "content": self.content,
            "sentiment": self.sentiment.value,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data["id"]),
            date=data["date"],
            content=data["content"],
            sentiment=Sentiment(data["sentiment"]),
        )


@dataclass
class MoodEntry:
    date: str  # YYYY-MM-DD
    mood: Mood

    def to_dict(self):
        return {"date": self.date, "mood": self.mood.value}

    @classmethod
    def from_dict(cls, data):
        return cls(date=data["date"], mood=Mood(data["mood"]))


@dataclass(frozen=True)
class Helpline:
    name: str
    number: str
    description: str


# 24/7 and daytime helplines in India
HELPLINES = [
    Helpline("Vandrevala Foundation", "9999666555", "24/7 crisis intervention"),
    Helpline("iCall", "9152987821", "Mon-Sat, 10 AM - 8 PM"),
    Helpline("Connecting Trust", "+919922001122", "12 PM - 8 PM, all days"),
    Helpline("AASRA", "9820466726", "24/7 emotional support for those in distress"),
]
