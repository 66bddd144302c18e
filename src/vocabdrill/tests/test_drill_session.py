"""Tests for the drill session state machine."""
import random
from unittest.mock import Mock

import pytest
from faker import Faker
from sqlalchemy.exc import OperationalError

from vocabdrill.exceptions import EmptyLessonError, InvalidStateError
from vocabdrill.models.drill_models import Lesson, SessionState, WordPair
from vocabdrill.services.drill_session import DrillSession
from vocabdrill.services.progress_service import NullRecorder

fake = Faker()


@pytest.fixture
def recorder() -> Mock:
    """Completion recorder that reports a count of one."""
    recorder = Mock()
    recorder.record.return_value = 1
    return recorder


@pytest.fixture
def session(recorder: Mock) -> DrillSession:
    return DrillSession(recorder=recorder, rng=random.Random(99))


def make_lesson(size: int) -> Lesson:
    words = fake.words(nb=size * 2, unique=True)
    return Lesson(title=fake.sentence(nb_words=2), pairs=[
        WordPair(words[i], words[i + size]) for i in range(size)
    ])


def wrong_choice(session: DrillSession) -> str:
    return next(option for option in session.current_options if option != session.correct_answer)


def assert_invariants(session: DrillSession) -> None:
    queued = list(session.queue)
    assert len(queued) + len(session.completed) == session.total_words
    assert not any(any(p is c for c in session.completed) for p in queued)


def test_new_session_is_idle(session: DrillSession) -> None:
    assert session.state == SessionState.IDLE
    assert session.total_words == 0
    assert session.accuracy == 0
    with pytest.raises(InvalidStateError):
        session.present_next()


def test_start_presents_lesson(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)

    assert session.state == SessionState.PRESENTING
    assert session.total_words == 3
    assert session.current_word is None
    assert session.total_attempts == 0
    assert session.correct_attempts == 0
    assert session.completed == []
    assert len(session.queue) == 3


def test_start_with_empty_lesson_raises(session: DrillSession) -> None:
    with pytest.raises(EmptyLessonError):
        session.start(Lesson(title="Empty", pairs=[]))
    assert session.state == SessionState.IDLE


def test_present_next_shows_queue_head(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    word = session.present_next()

    assert word is session.queue.peek_front()
    assert word.source in {"cat", "dog", "fish"}
    assert session.correct_answer == word.target
    assert session.correct_answer in session.current_options
    assert session.position == 1


def test_present_next_is_idempotent_while_presenting(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    word = session.present_next()
    options = list(session.current_options)

    assert session.present_next() is word
    assert session.current_options == options


def test_submit_correct_answer(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    word = session.present_next()

    result = session.submit_answer(word.target)

    assert result.is_correct is True
    assert result.correct_answer == word.target
    assert session.state == SessionState.ANSWERED
    assert session.total_attempts == 1
    assert session.correct_attempts == 1
    assert session.completed == [word]
    assert word not in session.queue
    assert_invariants(session)


def test_submit_wrong_answer_requeues(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    word = session.present_next()

    result = session.submit_answer(wrong_choice(session))

    assert result.is_correct is False
    assert result.correct_answer == word.target
    assert session.total_attempts == 1
    assert session.correct_attempts == 0
    assert session.completed == []
    assert list(session.queue)[-1] is word
    assert_invariants(session)


def test_missed_word_keeps_its_position(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    session.present_next()

    session.submit_answer(wrong_choice(session))

    assert session.state == SessionState.ANSWERED
    assert session.position == 1
    assert session.snapshot().position == 1


def test_correct_answer_keeps_its_position(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    session.present_next()

    session.submit_answer(session.correct_answer)

    assert session.position == 1
    session.present_next()
    assert session.position == 2


def test_submit_without_current_word_raises(session: DrillSession, animal_lesson: Lesson) -> None:
    with pytest.raises(InvalidStateError):
        session.submit_answer("mèo")

    session.start(animal_lesson)
    with pytest.raises(InvalidStateError):
        session.submit_answer("mèo")


def test_submit_twice_raises(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    word = session.present_next()
    session.submit_answer(word.target)

    with pytest.raises(InvalidStateError):
        session.submit_answer(word.target)


def test_animals_scenario_completes(session: DrillSession, recorder: Mock, animal_lesson: Lesson) -> None:
    """Three correct answers, with a miss on the way, finish the lesson."""
    session.start(animal_lesson)
    session.present_next()
    session.submit_answer(wrong_choice(session))

    correct = 0
    while session.present_next() is not None:
        session.submit_answer(session.correct_answer)
        correct += 1
        assert_invariants(session)

    assert correct == 3
    assert session.state == SessionState.COMPLETE
    assert session.total_words == 3
    assert len(session.completed) == 3
    assert len(session.queue) == 0
    assert session.total_attempts == 4
    assert session.accuracy == 75
    recorder.record.assert_called_once_with("word1.txt")
    assert session.completion_count == 1


def test_single_pair_lesson(session: DrillSession, recorder: Mock) -> None:
    session.start(Lesson(title="Sky", pairs=[WordPair("sun", "mặt trời")]))
    word = session.present_next()

    assert word.source == "sun"
    assert session.current_options == ["mặt trời"]

    assert session.submit_answer("mặt trời").is_correct
    assert session.present_next() is None
    assert session.state == SessionState.COMPLETE
    recorder.record.assert_called_once_with("Sky")


@pytest.mark.parametrize("size", [1, 2, 6, 15])
def test_terminates_after_exactly_total_words_correct_answers(size: int, recorder: Mock) -> None:
    session = DrillSession(recorder=recorder, rng=random.Random(size))
    session.start(make_lesson(size))

    submissions = 0
    while session.present_next() is not None:
        session.submit_answer(session.correct_answer)
        submissions += 1

    assert submissions == size
    assert session.accuracy == 100


def test_invariants_hold_under_random_play(recorder: Mock) -> None:
    rng = random.Random(2024)
    session = DrillSession(recorder=recorder, rng=rng)
    session.start(make_lesson(8))
    assert_invariants(session)

    while session.present_next() is not None:
        assert_invariants(session)
        session.submit_answer(rng.choice(session.current_options))
        assert_invariants(session)
        assert 2 <= len(session.current_options) <= 6

    assert session.state == SessionState.COMPLETE
    assert session.correct_attempts == 8
    recorder.record.assert_called_once()


def test_requeue_bound(recorder: Mock) -> None:
    """A missed word comes back after at most len(queue) - 1 other words."""
    session = DrillSession(recorder=recorder, rng=random.Random(5))
    session.start(make_lesson(5))
    missed = session.present_next()
    session.submit_answer(wrong_choice(session))
    bound = len(session.queue) - 1

    others = 0
    while session.present_next() is not missed:
        others += 1
        session.submit_answer(session.correct_answer)

    assert others <= bound


def test_options_are_valid_for_every_presentation(session: DrillSession) -> None:
    session.start(make_lesson(10))

    while session.present_next() is not None:
        options = session.current_options
        assert session.correct_answer in options
        assert len(set(options)) == len(options)
        assert 2 <= len(options) <= 6
        session.submit_answer(session.correct_answer)


def test_oversized_distractor_setting_is_capped(recorder: Mock) -> None:
    session = DrillSession(recorder=recorder, rng=random.Random(9), max_distractors=8)
    session.start(make_lesson(10))

    session.present_next()

    assert len(session.current_options) == 6


def test_accuracy_math(session: DrillSession) -> None:
    session.total_attempts = 10
    session.correct_attempts = 7
    assert session.accuracy == 70

    session.total_attempts = 0
    session.correct_attempts = 0
    assert session.accuracy == 0

    session.total_attempts = 8
    session.correct_attempts = 1
    assert session.accuracy == 13  # 12.5 rounds half up

    session.total_attempts = 3
    session.correct_attempts = 2
    assert session.accuracy == 67


def test_pause_blocks_advancing(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    word = session.present_next()
    session.submit_answer(word.target)
    session.pause()

    assert session.present_next() is word
    assert session.state == SessionState.ANSWERED

    session.resume()
    assert session.state == SessionState.ANSWERED
    next_word = session.present_next()
    assert next_word is not word
    assert session.state == SessionState.PRESENTING


def test_pause_blocks_answers(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    word = session.present_next()
    session.pause()

    with pytest.raises(InvalidStateError):
        session.submit_answer(word.target)

    session.resume()
    assert session.submit_answer(word.target).is_correct


def test_restart_after_complete(session: DrillSession, recorder: Mock, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    while session.present_next() is not None:
        session.submit_answer(session.correct_answer)

    session.restart()

    assert session.state == SessionState.PRESENTING
    assert session.total_attempts == 0
    assert session.correct_attempts == 0
    assert session.completed == []
    assert session.is_paused is False
    assert session.completion_count is None
    assert len(session.queue) == session.total_words == 3
    assert set(session.queue) == set(animal_lesson.pairs)

    # A second completion is recorded again
    while session.present_next() is not None:
        session.submit_answer(session.correct_answer)
    assert recorder.record.call_count == 2


def test_restart_mid_session_restores_all_pairs(session: DrillSession, animal_lesson: Lesson) -> None:
    session.start(animal_lesson)
    session.present_next()
    session.submit_answer(session.correct_answer)
    session.pause()

    session.restart()

    assert session.is_paused is False
    assert len(session.queue) == 3
    assert session.completed == []
    assert session.present_next() is not None


def test_restart_before_start_raises(session: DrillSession) -> None:
    with pytest.raises(InvalidStateError):
        session.restart()


def test_present_next_after_complete_records_once(session: DrillSession, recorder: Mock) -> None:
    session.start(Lesson(title="Sky", pairs=[WordPair("sun", "mặt trời")]))
    session.present_next()
    session.submit_answer("mặt trời")

    assert session.present_next() is None
    assert session.present_next() is None
    recorder.record.assert_called_once()


def test_recorder_failure_does_not_abort_completion(session: DrillSession, recorder: Mock) -> None:
    recorder.record.side_effect = OperationalError("UPDATE", {}, Exception("database is locked"))
    session.start(Lesson(title="Sky", pairs=[WordPair("sun", "mặt trời")]))
    session.present_next()
    session.submit_answer("mặt trời")

    assert session.present_next() is None
    assert session.state == SessionState.COMPLETE
    assert session.completion_count is None


def test_default_recorder_counts_in_memory(animal_lesson: Lesson) -> None:
    session = DrillSession(rng=random.Random(3))
    assert isinstance(session.recorder, NullRecorder)

    for expected in (1, 2):
        session.start(animal_lesson)
        while session.present_next() is not None:
            session.submit_answer(session.correct_answer)
        assert session.completion_count == expected


def test_duplicate_sources_are_drilled_separately(session: DrillSession) -> None:
    """Both entries for a repeated source must be answered before completion."""
    lesson = Lesson(title="Bank", pairs=[
        WordPair("bank", "ngân hàng"),
        WordPair("bank", "bờ sông"),
        WordPair("river", "sông"),
    ])
    session.start(lesson)

    twins = {"ngân hàng": "bờ sông", "bờ sông": "ngân hàng"}
    answered = []
    while (word := session.present_next()) is not None:
        # A repeated source never offers its twin's translation as a distractor
        if word.source == "bank":
            assert twins[word.target] not in session.current_options
        answered.append(word.target)
        session.submit_answer(session.correct_answer)

    assert sorted(answered) == sorted(["ngân hàng", "bờ sông", "sông"])
    assert len(session.completed) == 3


def test_snapshot(session: DrillSession, animal_lesson: Lesson, recorder: Mock) -> None:
    session.start(animal_lesson)
    word = session.present_next()
    snapshot = session.snapshot()

    assert snapshot.title == "Animals"
    assert snapshot.state == SessionState.PRESENTING
    assert snapshot.current_word is word
    assert snapshot.position == 1
    assert snapshot.remaining == 3
    assert snapshot.total_words == 3
    assert snapshot.accuracy == 0
    assert snapshot.completion_count is None
