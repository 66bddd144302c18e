"""Review queue: words still owed a correct answer in the current session."""
import logging
import random
from collections import deque
from typing import Deque, Iterable, Iterator, Optional

from vocabdrill.exceptions import EmptyLessonError, InvalidStateError
from vocabdrill.models.drill_models import WordPair
from vocabdrill.services.shuffle import shuffled

logger = logging.getLogger(__name__)


class ReviewQueue:
    """FIFO of pending pairs where a missed pair goes to the back of the line."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._pairs: Deque[WordPair] = deque()

    def initialize(self, pairs: Iterable[WordPair]) -> None:
        """Load a shuffled copy of `pairs` as the working order."""
        order = shuffled(list(pairs), self.rng)
        if not order:
            raise EmptyLessonError("Cannot drill a lesson without word pairs")
        self._pairs = deque(order)
        logger.debug(f"Review queue initialized with {len(order)} pairs")

    def peek_front(self) -> Optional[WordPair]:
        """Pair at the head of the queue, or None when nothing is pending."""
        return self._pairs[0] if self._pairs else None

    def mark_correct(self) -> WordPair:
        """Remove the head pair permanently and return it."""
        if not self._pairs:
            raise InvalidStateError("Review queue is empty")
        return self._pairs.popleft()

    def mark_incorrect(self) -> WordPair:
        """Move the head pair to the tail and return it."""
        if not self._pairs:
            raise InvalidStateError("Review queue is empty")
        pair = self._pairs.popleft()
        self._pairs.append(pair)
        return pair

    def __len__(self) -> int:
        return len(self._pairs)

    def __iter__(self) -> Iterator[WordPair]:
        return iter(list(self._pairs))

    def __contains__(self, pair: object) -> bool:
        return any(p is pair for p in self._pairs)
