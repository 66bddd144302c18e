"""Test configuration."""
import os
import random
from typing import List

import pytest

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADVANCE_DELAY", "0")

# Import after environment setup
from vocabdrill.models.base import init_db
from vocabdrill.models.drill_models import Lesson, WordPair


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    init_db()
    yield


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible shuffles."""
    return random.Random(1234)


@pytest.fixture
def animal_pairs() -> List[WordPair]:
    return [
        WordPair("cat", "mèo"),
        WordPair("dog", "chó"),
        WordPair("fish", "cá"),
    ]


@pytest.fixture
def animal_lesson(animal_pairs: List[WordPair]) -> Lesson:
    return Lesson(title="Animals", pairs=animal_pairs, key="word1.txt")
