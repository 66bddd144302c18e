"""Database models for the drill bot."""
from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)

from vocabdrill.models.base import Base, TimestampMixin


class LessonProgress(Base, TimestampMixin):
    """How many times a learner has completed a lesson."""

    __tablename__ = "lesson_progress"
    __table_args__ = (
        UniqueConstraint("learner_id", "lesson_key", name="uq_lesson_progress_learner_lesson"),
    )

    id = Column(Integer, primary_key=True)
    learner_id = Column(String, nullable=False, index=True)  # opaque external identity
    lesson_key = Column(String, nullable=False)  # e.g., "word3.txt"
    completion_count = Column(Integer, default=0, nullable=False)
    last_completed_at = Column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return (f"<LessonProgress learner={self.learner_id} lesson={self.lesson_key} "
                f"count={self.completion_count}>")
