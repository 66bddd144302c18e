"""Distractor selection and answer option building."""
import logging
import random
from typing import Iterable, List, Optional

from vocabdrill.config import MAX_DISTRACTORS
from vocabdrill.models.drill_models import OptionSet, WordPair
from vocabdrill.services.shuffle import shuffle_in_place

logger = logging.getLogger(__name__)


class DistractorSelector:
    """Picks wrong-answer candidates for a word."""

    def __init__(self, max_distractors: int = MAX_DISTRACTORS, rng: Optional[random.Random] = None):
        if max_distractors > MAX_DISTRACTORS:
            logger.warning(f"max_distractors={max_distractors} is above the limit, using {MAX_DISTRACTORS}")
            max_distractors = MAX_DISTRACTORS
        self.max_distractors = max_distractors
        self.rng = rng or random.Random()

    def select(self, correct_pair: WordPair, candidate_pool: Iterable[WordPair]) -> List[WordPair]:
        """Return up to `max_distractors` pairs whose translations differ from the correct one.

        Candidates sharing the correct pair's source are excluded, and so are
        candidates whose target would duplicate the correct answer or another
        distractor. The result is never padded.
        """
        seen_targets = {correct_pair.target}
        candidates = []
        for pair in candidate_pool:
            if pair.source == correct_pair.source or pair.target in seen_targets:
                continue
            seen_targets.add(pair.target)
            candidates.append(pair)

        shuffle_in_place(candidates, self.rng)
        return candidates[:min(self.max_distractors, len(candidates))]


class OptionSetBuilder:
    """Builds the shuffled list of answer choices for a word."""

    def __init__(self, selector: Optional[DistractorSelector] = None, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.selector = selector or DistractorSelector(rng=self.rng)

    def build(self, correct_pair: WordPair, candidate_pool: Iterable[WordPair]) -> OptionSet:
        distractors = self.selector.select(correct_pair, candidate_pool)
        options = [correct_pair.target] + [pair.target for pair in distractors]
        shuffle_in_place(options, self.rng)
        logger.debug(f"Options for '{correct_pair.source}': {options}")
        return OptionSet(options=options, correct_answer=correct_pair.target)
