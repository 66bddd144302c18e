"""Drill session: the state machine that walks a learner through one lesson."""
import logging
import random
from typing import List, Optional

from vocabdrill.config import settings
from vocabdrill.exceptions import InvalidStateError
from vocabdrill.models.drill_models import (
    AnswerResult,
    Lesson,
    SessionSnapshot,
    SessionState,
    WordPair,
)
from vocabdrill.monitoring import completion_record_errors
from vocabdrill.services.options import DistractorSelector, OptionSetBuilder
from vocabdrill.services.progress_service import CompletionRecorder, NullRecorder
from vocabdrill.services.review_queue import ReviewQueue

logger = logging.getLogger(__name__)


class DrillSession:
    """One attempt at a lesson, from start() until every word was answered correctly once.

    States: IDLE -> PRESENTING -> ANSWERED -> (PRESENTING | COMPLETE). The
    paused flag is orthogonal and blocks leaving PRESENTING. The caller drives
    the session: present_next() shows a word, submit_answer() grades it, and
    the caller calls present_next() again once feedback has been shown.
    """

    def __init__(
        self,
        recorder: Optional[CompletionRecorder] = None,
        rng: Optional[random.Random] = None,
        max_distractors: Optional[int] = None,
    ):
        self.rng = rng or random.Random()
        self.recorder = recorder or NullRecorder()
        if max_distractors is None:
            max_distractors = settings.drill.max_distractors
        self.option_builder = OptionSetBuilder(
            DistractorSelector(max_distractors, rng=self.rng), rng=self.rng
        )
        self.queue = ReviewQueue(rng=self.rng)
        self.lesson: Optional[Lesson] = None
        self.state = SessionState.IDLE
        self.completion_count: Optional[int] = None
        self._reset_progress()

    def _reset_progress(self) -> None:
        self.completed: List[WordPair] = []
        self.current_word: Optional[WordPair] = None
        self.current_options: List[str] = []
        self.correct_answer: Optional[str] = None
        self.total_attempts = 0
        self.correct_attempts = 0
        self.is_paused = False
        self._recorded = False

    @property
    def total_words(self) -> int:
        return len(self.lesson.pairs) if self.lesson else 0

    @property
    def accuracy(self) -> int:
        """Percentage of correct attempts, rounded half up."""
        if self.total_attempts == 0:
            return 0
        return (200 * self.correct_attempts + self.total_attempts) // (2 * self.total_attempts)

    @property
    def position(self) -> int:
        """1-indexed number of the current word, or the count of finished words."""
        position = self.total_words - len(self.queue)
        # a missed word goes back into the queue but is still the current item
        if self.current_word is not None and self.current_word in self.queue:
            position += 1
        return position

    def start(self, lesson: Lesson) -> None:
        """Begin drilling `lesson`. Raises EmptyLessonError when it has no pairs."""
        self.queue.initialize(lesson.pairs)
        self.lesson = lesson
        self.completion_count = None
        self._reset_progress()
        self.state = SessionState.PRESENTING
        logger.info(f"Started session for lesson '{lesson.title}' with {self.total_words} words")

    def present_next(self) -> Optional[WordPair]:
        """Show the next pending word, or complete the session when none is left.

        Returns the word on screen. Calling it while paused, while a word is
        already on screen, or after completion changes nothing.
        """
        if self.state == SessionState.IDLE:
            raise InvalidStateError("Session has not been started")
        if self.state == SessionState.COMPLETE:
            return None
        if self.is_paused:
            logger.debug("Session is paused, not advancing")
            return self.current_word
        if self.state == SessionState.PRESENTING and self.current_word is not None:
            return self.current_word

        pair = self.queue.peek_front()
        if pair is None:
            self._complete()
            return None

        option_set = self.option_builder.build(pair, self.lesson.pairs)
        self.current_word = pair
        self.current_options = option_set.options
        self.correct_answer = option_set.correct_answer
        self.state = SessionState.PRESENTING
        return pair

    def submit_answer(self, choice: str) -> AnswerResult:
        """Grade the learner's choice for the word on screen."""
        if self.state != SessionState.PRESENTING or self.current_word is None:
            raise InvalidStateError(f"Cannot submit an answer in state {self.state.value}")
        if self.is_paused:
            raise InvalidStateError("Cannot submit an answer while paused")

        self.total_attempts += 1
        is_correct = choice == self.correct_answer
        if is_correct:
            self.correct_attempts += 1
            self.completed.append(self.queue.mark_correct())
        else:
            self.queue.mark_incorrect()

        self.state = SessionState.ANSWERED
        logger.debug(f"Answer '{choice}' for '{self.current_word.source}' "
                     f"is {'correct' if is_correct else 'wrong'}")
        return AnswerResult(is_correct=is_correct, correct_answer=self.correct_answer)

    def pause(self) -> None:
        self.is_paused = True

    def resume(self) -> None:
        """Clear the paused flag; the caller decides when to call present_next()."""
        self.is_paused = False

    def restart(self) -> None:
        """Reshuffle every pair of the lesson and start counting from zero."""
        if self.total_words == 0:
            raise InvalidStateError("Cannot restart a session without words")
        self.queue.initialize(self.lesson.pairs)
        self._reset_progress()
        self.completion_count = None
        self.state = SessionState.PRESENTING
        logger.info(f"Restarted session for lesson '{self.lesson.title}'")

    def _complete(self) -> None:
        self.state = SessionState.COMPLETE
        self.current_word = None
        self.current_options = []
        if self._recorded:
            return
        self._recorded = True
        logger.info(f"Completed lesson '{self.lesson.title}' in {self.total_attempts} attempts "
                    f"({self.accuracy}% accuracy)")
        try:
            self.completion_count = self.recorder.record(self.lesson.key)
        except Exception as e:
            completion_record_errors.inc()
            logger.error(f"Error recording completion of {self.lesson.key}: {e}")

    def snapshot(self) -> SessionSnapshot:
        """Current session values for rendering."""
        return SessionSnapshot(
            title=self.lesson.title if self.lesson else "",
            state=self.state,
            is_paused=self.is_paused,
            current_word=self.current_word,
            options=list(self.current_options),
            position=self.position,
            total_words=self.total_words,
            remaining=len(self.queue),
            total_attempts=self.total_attempts,
            correct_attempts=self.correct_attempts,
            accuracy=self.accuracy,
            completion_count=self.completion_count,
        )
