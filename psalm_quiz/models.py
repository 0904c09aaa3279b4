"""
Core data models for the Psalm Quiz bot.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from datetime import datetime


class QuestionType(Enum):
    """Kind of a generated question."""
    FILL_BLANK = "fill_blank"
    MULTIPLE_CHOICE = "multiple_choice"
    WORD_ORDER = "word_order"
    VERSE_COMPLETION = "verse_completion"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


class QuestionStyle(Enum):
    """Question style requested when generating a quiz."""
    FILL_BLANK = "fill_blank"
    MULTIPLE_CHOICE = "multiple_choice"
    WORD_ORDER = "word_order"
    VERSE_COMPLETION = "verse_completion"
    MIXED = "mixed"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def description(self) -> str:
        return _STYLE_DESCRIPTIONS[self]

    @classmethod
    def parse(cls, value) -> "QuestionStyle":
        """
        Parse a style from user input such as "Fill blank", "word-order" or "mixed".

        Raises:
            ValueError: If the value does not name a style
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        for style in cls:
            if style.value == normalized:
                return style
        raise ValueError(f"Unknown question style: {value}")


_STYLE_DESCRIPTIONS = {
    QuestionStyle.FILL_BLANK: "Complete missing words",
    QuestionStyle.MULTIPLE_CHOICE: "Choose correct answers",
    QuestionStyle.WORD_ORDER: "Arrange words correctly",
    QuestionStyle.VERSE_COMPLETION: "Complete verse endings",
    QuestionStyle.MIXED: "Variety of question types",
}


@dataclass(frozen=True)
class Verse:
    """A single numbered verse of one psalm in one translation."""
    psalm: int
    translation: str
    number: int
    text: str

    @property
    def words(self) -> List[str]:
        return self.text.split()


@dataclass
class Translation:
    """A Bible translation the psalm text is available in."""
    name: str
    abbreviation: str


@dataclass
class Psalm:
    """A psalm with the translations loaded for it."""
    number: int
    title: str
    translations: List[Translation] = field(default_factory=list)


@dataclass
class Question:
    """Represents a single generated quiz question."""
    kind: QuestionType
    prompt: str
    correct_answer: str
    options: List[str] = field(default_factory=list)
    verse_number: int = 0
    explanation: Optional[str] = None
    answered_correctly: Optional[bool] = None


@dataclass
class QuizSettings:
    """Configuration settings for a quiz session."""
    style: QuestionStyle = QuestionStyle.MIXED
    translation: str = "KJV"
    question_count: Optional[int] = None
    seed: Optional[int] = None


@dataclass
class QuizSession:
    """Represents an active quiz session in a Discord channel."""
    channel_id: int
    user_id: int
    psalm_number: int
    translation: str
    questions: List[Question]
    current_index: int
    correct_count: int
    is_active: bool
    settings: QuizSettings
    start_time: datetime


@dataclass
class ProgressRecord:
    """Aggregated quiz statistics for one user, psalm and translation."""
    user_id: int
    psalm_number: int
    translation: str
    best_score: float = 0.0
    last_score: float = 0.0
    attempts: int = 0
    questions_answered: int = 0
    correct_answers: int = 0
    total_time_seconds: int = 0
    streak_days: int = 0
    last_practiced: Optional[datetime] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def accuracy(self) -> float:
        if self.questions_answered == 0:
            return 0.0
        return self.correct_answers / self.questions_answered
