"""Models for drill-related data structures."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class WordPair:
    """One vocabulary item: the word to learn and its translation.

    Two pairs with the same source are the same vocabulary item.
    """
    source: str
    target: str = field(compare=False)


@dataclass
class Lesson:
    """A titled list of word pairs."""
    title: str
    pairs: List[WordPair]
    key: str = ""

    def __post_init__(self):
        if not self.key:
            self.key = self.title


@dataclass
class OptionSet:
    """Answer choices shown for one word."""
    options: List[str]
    correct_answer: str


@dataclass
class AnswerResult:
    """Outcome of a submitted answer."""
    is_correct: bool
    correct_answer: str


class SessionState(Enum):
    """States of a drill session."""
    IDLE = "idle"
    PRESENTING = "presenting"
    ANSWERED = "answered"
    COMPLETE = "complete"


@dataclass
class SessionSnapshot:
    """Read-only view of a session for display."""
    title: str
    state: SessionState
    is_paused: bool
    current_word: Optional[WordPair]
    options: List[str]
    position: int
    total_words: int
    remaining: int
    total_attempts: int
    correct_attempts: int
    accuracy: int
    completion_count: Optional[int] = None
