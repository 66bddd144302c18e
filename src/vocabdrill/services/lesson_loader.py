"""Loading lessons from 'english - translation' text files."""
import logging
import warnings
from collections import Counter
from pathlib import Path
from typing import Iterable, List, Optional

from vocabdrill.config import settings
from vocabdrill.exceptions import DuplicateSourceWarning, MalformedLineError, ParseError
from vocabdrill.models.drill_models import Lesson, WordPair

logger = logging.getLogger(__name__)

SEPARATOR = " - "


def parse_pairs(lines: Iterable[str], first_line_number: int = 1) -> List[WordPair]:
    """Parse 'source - target' lines into word pairs, skipping malformed ones."""
    pairs = []
    for line_number, line in enumerate(lines, start=first_line_number):
        parts = line.split(SEPARATOR)
        source, target = (parts[0].strip().lower(), parts[1].strip()) if len(parts) == 2 else ("", "")
        if not source or not target:
            logger.warning(str(MalformedLineError(line_number, line)))
            continue
        pairs.append(WordPair(source=source, target=target))
    return pairs


def parse_lesson(text: str, key: str, titled: bool = True, title: Optional[str] = None) -> Lesson:
    """Parse lesson text. When `titled`, the first non-blank line is the title."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if titled and lines:
        title = lines[0]
        lines = lines[1:]
        first_line_number = 2
    else:
        first_line_number = 1

    pairs = parse_pairs(lines, first_line_number)
    if not pairs:
        raise ParseError(f"No valid vocabulary pairs in {key}")

    duplicates = [source for source, count in Counter(p.source for p in pairs).items() if count > 1]
    if duplicates:
        warnings.warn(
            f"Lesson {key} repeats source words: {', '.join(duplicates)}",
            DuplicateSourceWarning,
            stacklevel=2,
        )

    return Lesson(title=title or key, pairs=pairs, key=key)


def load_lesson_file(path: Path, titled: bool = True) -> Lesson:
    """Load one lesson file; the file name is the completion key."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    return parse_lesson(text, key=path.name, titled=titled, title=path.stem)


def load_lessons_dir(directory: Optional[Path] = None, pattern: Optional[str] = None) -> List[Lesson]:
    """Load word1.txt, word2.txt, ... until the first missing index."""
    directory = Path(directory or settings.paths.lessons_dir)
    pattern = pattern or settings.drill.lesson_file_pattern

    lessons = []
    index = 1
    while True:
        path = directory / pattern.format(index=index)
        if not path.exists():
            logger.debug(f"No more lesson files found after {path.name}")
            break
        index += 1

        if not path.read_text(encoding="utf-8").strip():
            logger.warning(f"Skipping empty lesson file: {path.name}")
            continue
        try:
            lessons.append(load_lesson_file(path))
        except ParseError as e:
            logger.warning(f"Skipping lesson {path.name}: {e}")

    logger.info(f"Loaded {len(lessons)} lessons from {directory}")
    return lessons
