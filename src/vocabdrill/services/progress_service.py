"""Service for recording how many times a learner has completed each lesson."""
import logging
from collections import defaultdict
from datetime import datetime, UTC
from typing import Callable, Dict, Protocol

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabdrill.models.base import SessionLocal
from vocabdrill.models.models import LessonProgress

logger = logging.getLogger(__name__)


class CompletionRecorder(Protocol):
    """Anything that can persist a lesson completion."""

    def record(self, lesson_key: str) -> int:
        """Increment the completion count of `lesson_key` and return the new count."""
        ...


class NullRecorder:
    """Keeps completion counts in memory only."""

    def __init__(self):
        self.counts: Dict[str, int] = defaultdict(int)

    def record(self, lesson_key: str) -> int:
        self.counts[lesson_key] += 1
        return self.counts[lesson_key]


class ProgressService:
    """Completion counts of one learner, stored in the database."""

    def __init__(self, db: Session, learner_id: str):
        """Initialize the service with a database session and learner id."""
        self.db = db
        self.learner_id = str(learner_id)

    def _get_progress(self, lesson_key: str) -> LessonProgress | None:
        return (
            self.db.query(LessonProgress)
            .filter(
                and_(
                    LessonProgress.learner_id == self.learner_id,
                    LessonProgress.lesson_key == lesson_key,
                )
            )
            .first()
        )

    def record(self, lesson_key: str) -> int:
        """Increment the completion count for a lesson by exactly one."""
        try:
            progress = self._get_progress(lesson_key)
            if not progress:
                progress = LessonProgress(
                    learner_id=self.learner_id,
                    lesson_key=lesson_key,
                    completion_count=0,
                )
                self.db.add(progress)
            progress.completion_count += 1
            progress.last_completed_at = datetime.now(UTC)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"Learner {self.learner_id} completed {lesson_key} "
                    f"({progress.completion_count} times)")
        return progress.completion_count

    def get_completion_count(self, lesson_key: str) -> int:
        """Get how many times the learner completed a lesson."""
        progress = self._get_progress(lesson_key)
        return progress.completion_count if progress else 0

    def get_completion_counts(self) -> Dict[str, int]:
        """Get completion counts for every lesson the learner has finished."""
        rows = (
            self.db.query(LessonProgress)
            .filter(LessonProgress.learner_id == self.learner_id)
            .all()
        )
        return {row.lesson_key: row.completion_count for row in rows}


class StoredCompletionRecorder:
    """Records completions for one learner, opening a database session per call."""

    def __init__(self, learner_id: str, session_factory: Callable[[], Session] = SessionLocal):
        self.learner_id = str(learner_id)
        self.session_factory = session_factory

    def record(self, lesson_key: str) -> int:
        db = self.session_factory()
        try:
            return ProgressService(db, self.learner_id).record(lesson_key)
        finally:
            db.close()
