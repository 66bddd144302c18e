"""Telegram bot handlers."""
import asyncio
import html
import logging
import random
from pathlib import Path
from typing import List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import CallbackContext

from vocabdrill.config import settings
from vocabdrill.exceptions import EmptyLessonError, InvalidStateError, ParseError
from vocabdrill.models.base import SessionLocal
from vocabdrill.models.drill_models import Lesson, SessionState
from vocabdrill.monitoring import active_sessions, answers, sessions_completed, sessions_started
from vocabdrill.services.drill_session import DrillSession
from vocabdrill.services.lesson_loader import load_lessons_dir, parse_lesson
from vocabdrill.services.progress_service import ProgressService, StoredCompletionRecorder

# Get logger for this module
logger = logging.getLogger(__name__)

# Conversation states
LESSON_MENU, DRILLING = range(2)

# Button texts
LESSONS = "📚 Lessons"
PAUSE = "⏸️ Pause"
RESUME = "▶️ Resume"
RESTART = "🔄 Restart"
PLAY_AGAIN = "🔄 Play again"

def msg_back_to(text: str) -> str: return f"🔙 {text}"

ERR_MSG_NO_SESSION = "No lesson in progress. Choose one with /start"

# Feedback messages for correct and incorrect answers
CORRECT_FEEDBACK = [
    "Excellent!", "You got it!", "Fantastic work!", "Bravo!",
    "Perfect match!", "Superb!", "Nailed it!", "Brilliant!",
]

INCORRECT_FEEDBACK = [
    "Oops, not quite! Keep trying!", "Almost there, give it another shot!",
    "Don't worry, you'll get it!", "That's not it, but you're learning!",
    "Try again, you can do it!", "A little off, keep practicing!",
    "Keep pushing, you'll find it!", "Not the one, but every try helps!",
]

KB_BTN_BACK_TO_LESSONS = InlineKeyboardButton(msg_back_to(LESSONS), callback_data="back_to_lessons")


def learner_id(update: Update) -> str:
    """Opaque learner identity used for completion records."""
    return str(update.effective_user.id)


async def log_received(update: Update, context_type: str) -> None:
    """Log message."""
    txt = ""
    if update.callback_query: txt = f" {update.callback_query.data}"
    elif update.message and update.message.text: txt = f" {update.message.text}"
    logger.info(f"Received @{context_type:8} from user {update.effective_user.username} ({update.effective_user.id}){txt}")


async def send_popup_message(update: Update, text: str) -> None:
    """Show an alert-style popup, or a plain reply when there is no callback query."""
    try:
        if update.callback_query:
            await update.callback_query.answer(text=text, show_alert=True)
        else:
            await update.message.reply_text(f"⚠️ {text}")
    except TelegramError as e:
        logger.warning(f"Error sending popup message: {e}")


async def render(update: Update, text: str, keyboard: List[List[InlineKeyboardButton]]) -> None:
    """Edit the message behind a callback query, or reply to a plain message."""
    reply_markup = InlineKeyboardMarkup(keyboard)
    try:
        if update.callback_query:
            await update.callback_query.edit_message_text(text, reply_markup=reply_markup, parse_mode="HTML")
        else:
            await update.message.reply_text(text, reply_markup=reply_markup, parse_mode="HTML")
    except TelegramError as e:
        logger.warning(f"Error sending message: {e}")


def get_session(context: CallbackContext) -> Optional[DrillSession]:
    return context.user_data.get("session")


def begin_session(update: Update, context: CallbackContext, lesson: Lesson) -> DrillSession:
    """Start drilling `lesson` for the learner behind `update`."""
    session = DrillSession(recorder=StoredCompletionRecorder(learner_id(update)))
    session.start(lesson)
    end_session(context)
    context.user_data["session"] = session

    sessions_started.inc()
    active_sessions.inc()
    return session


def end_session(context: CallbackContext) -> None:
    """Drop the learner's session, unfinished or not."""
    session = context.user_data.pop("session", None)
    if session is not None and session.state != SessionState.COMPLETE:
        active_sessions.dec()


def progress_line(session: DrillSession) -> str:
    return (f"Word {session.position} / {session.total_words} · "
            f"Score: {session.correct_attempts} (Attempts: {session.total_attempts}, "
            f"Accuracy: {session.accuracy}%)")


async def show_lessons(update: Update, context: CallbackContext) -> int:
    """Show the list of lessons with how many times each was played."""
    lessons = load_lessons_dir(settings.paths.lessons_dir)
    context.user_data["lessons"] = lessons

    db = SessionLocal()
    try:
        counts = ProgressService(db, learner_id(update)).get_completion_counts()
    finally:
        db.close()

    if not lessons:
        await render(update,
                     "No lessons found.\n"
                     "Send me a .txt file with one 'word - translation' pair per line to start drilling.",
                     [])
        return LESSON_MENU

    keyboard = [
        [InlineKeyboardButton(f"{lesson.title} (played {counts.get(lesson.key, 0)} times)",
                              callback_data=f"lesson_{index}")]
        for index, lesson in enumerate(lessons)
    ]
    await render(update,
                 "Welcome to VocabDrill! 👋\n\n"
                 "Choose a lesson, or send me a .txt file with your own words.",
                 keyboard)
    return LESSON_MENU


async def handle_start(update: Update, context: CallbackContext) -> int:
    """Start the conversation and show the lesson menu."""
    await log_received(update, "start")
    return await show_lessons(update, context)


async def handle_callback(update: Update, context: CallbackContext) -> int:
    """Handle callback queries from inline keyboard."""
    query = update.callback_query
    await query.answer()

    await log_received(update, "callback")

    if query.data.startswith("lesson_"):
        return await start_lesson(update, context)
    elif query.data.startswith("answer_"):
        return await handle_answer(update, context)
    elif query.data == "pause":
        return await handle_pause(update, context)
    elif query.data == "resume":
        return await handle_resume(update, context)
    elif query.data == "restart":
        return await handle_restart(update, context)
    elif query.data == "back_to_lessons":
        end_session(context)
        return await show_lessons(update, context)

    return LESSON_MENU


async def handle_message(update: Update, context: CallbackContext) -> int:
    """Handle plain text messages."""
    await log_received(update, "message")
    await update.message.reply_text("Please use /start to choose a lesson")
    return DRILLING if get_session(context) else LESSON_MENU


async def start_lesson(update: Update, context: CallbackContext) -> int:
    """Start the lesson picked from the menu."""
    lessons = context.user_data.get("lessons") or []
    try:
        lesson = lessons[int(update.callback_query.data.split("_", 1)[1])]
    except (IndexError, ValueError):
        await send_popup_message(update, "This lesson is no longer available")
        return await show_lessons(update, context)

    begin_session(update, context, lesson)
    return await send_next_word(update, context)


async def handle_document(update: Update, context: CallbackContext) -> int:
    """Drill an uploaded vocabulary file."""
    await log_received(update, "document")
    document = update.message.document
    file_name = document.file_name or "lesson.txt"
    if not file_name.lower().endswith(".txt"):
        await update.message.reply_text("Please send a .txt file with 'word - translation' lines")
        return LESSON_MENU

    file = await document.get_file()
    data = await file.download_as_bytearray()
    try:
        lesson = parse_lesson(bytes(data).decode("utf-8"), key=file_name, titled=False,
                              title=Path(file_name).stem)
    except UnicodeDecodeError:
        await update.message.reply_text("The file must be UTF-8 encoded text")
        return LESSON_MENU
    except ParseError:
        await update.message.reply_text(
            "I couldn't find any 'word - translation' pairs in this file.\n"
            "Each line should look like: cat - mèo")
        return LESSON_MENU

    begin_session(update, context, lesson)
    return await send_next_word(update, context)


async def send_next_word(update: Update, context: CallbackContext) -> int:
    """Present the next word, the pause screen or the completion summary."""
    session = get_session(context)
    if not session:
        await render(update, ERR_MSG_NO_SESSION, [[KB_BTN_BACK_TO_LESSONS]])
        return LESSON_MENU

    if session.is_paused:
        return await send_paused(update, session)

    was_complete = session.state == SessionState.COMPLETE
    word = session.present_next()
    if word is None:
        if not was_complete:
            sessions_completed.inc()
            active_sessions.dec()
        return await send_completed(update, session)

    keyboard = [
        [InlineKeyboardButton(option, callback_data=f"answer_{index}")]
        for index, option in enumerate(session.current_options)
    ]
    keyboard.append([InlineKeyboardButton(PAUSE, callback_data="pause"),
                     InlineKeyboardButton(RESTART, callback_data="restart")])
    keyboard.append([KB_BTN_BACK_TO_LESSONS])

    await render(update,
                 f"<b>{html.escape(session.lesson.title)}</b>\n{progress_line(session)}\n\n"
                 f"Choose the correct translation for:\n\n<b>{html.escape(word.source)}</b>",
                 keyboard)
    return DRILLING


async def send_paused(update: Update, session: DrillSession) -> int:
    await render(update,
                 f"⏸️ <b>{html.escape(session.lesson.title)}</b> is paused\n{progress_line(session)}",
                 [[InlineKeyboardButton(RESUME, callback_data="resume"),
                   InlineKeyboardButton(RESTART, callback_data="restart")],
                  [KB_BTN_BACK_TO_LESSONS]])
    return DRILLING


async def send_completed(update: Update, session: DrillSession) -> int:
    message = (f"🎉 Congratulations! You matched all {session.total_words} words "
               f"in {session.total_attempts} attempts!\n"
               f"Accuracy: {session.accuracy}%")
    if session.completion_count is not None:
        message += f"\nPlayed: {session.completion_count} times"
    await render(update, message,
                 [[InlineKeyboardButton(PLAY_AGAIN, callback_data="restart")],
                  [KB_BTN_BACK_TO_LESSONS]])
    return LESSON_MENU


async def handle_answer(update: Update, context: CallbackContext) -> int:
    """Grade the chosen option and schedule the next word."""
    session = get_session(context)
    if not session or session.state != SessionState.PRESENTING or session.is_paused:
        await send_popup_message(update, "This question has already been answered")
        return DRILLING if session else LESSON_MENU

    try:
        choice = session.current_options[int(update.callback_query.data.split("_", 1)[1])]
    except (IndexError, ValueError):
        logger.warning(f"Unknown answer callback: {update.callback_query.data}")
        return DRILLING

    word = session.current_word
    result = session.submit_answer(choice)
    answers.labels(result="correct" if result.is_correct else "wrong").inc()

    if result.is_correct:
        feedback = f"✅ {random.choice(CORRECT_FEEDBACK)}"
    else:
        feedback = f"❌ {random.choice(INCORRECT_FEEDBACK)}"
    await render(update,
                 f"{feedback}\n\n<b>{html.escape(word.source)}</b> - <i>{html.escape(result.correct_answer)}</i>\n\n"
                 f"{progress_line(session)}",
                 [])

    context.application.create_task(
        advance_after_delay(update, context, session, session.total_attempts), update=update)
    return DRILLING


async def advance_after_delay(update: Update, context: CallbackContext, session: DrillSession,
                              attempts: int) -> None:
    """Show the next word once the feedback has been on screen long enough."""
    await asyncio.sleep(settings.drill.advance_delay)

    # Skip if the learner restarted, switched lessons or answered again meanwhile
    if get_session(context) is not session or session.total_attempts != attempts:
        return
    if session.state != SessionState.ANSWERED:
        return
    await send_next_word(update, context)


async def handle_pause(update: Update, context: CallbackContext) -> int:
    session = get_session(context)
    if not session or session.state == SessionState.COMPLETE:
        await send_popup_message(update, ERR_MSG_NO_SESSION)
        return LESSON_MENU
    session.pause()
    return await send_paused(update, session)


async def handle_resume(update: Update, context: CallbackContext) -> int:
    session = get_session(context)
    if not session:
        await send_popup_message(update, ERR_MSG_NO_SESSION)
        return LESSON_MENU
    session.resume()
    return await send_next_word(update, context)


async def handle_restart(update: Update, context: CallbackContext) -> int:
    """Reshuffle the current lesson and start over."""
    session = get_session(context)
    if not session:
        await send_popup_message(update, ERR_MSG_NO_SESSION)
        return LESSON_MENU

    was_complete = session.state == SessionState.COMPLETE
    try:
        session.restart()
    except (InvalidStateError, EmptyLessonError) as e:
        logger.warning(f"Cannot restart session: {e}")
        await send_popup_message(update, ERR_MSG_NO_SESSION)
        return LESSON_MENU

    sessions_started.inc()
    if was_complete:
        active_sessions.inc()
    return await send_next_word(update, context)
