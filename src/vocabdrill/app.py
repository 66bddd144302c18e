"""Main application class."""
import logging
from typing import Optional
from warnings import filterwarnings

from telegram.warnings import PTBUserWarning

# Suppress the warning about CallbackQueryHandler and per_message
filterwarnings(action="ignore", message=r".*CallbackQueryHandler", category=PTBUserWarning)

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from vocabdrill.config import ensure_directories, settings
from vocabdrill.models.base import init_db
from vocabdrill.monitoring import start_monitoring
from vocabdrill.bot import (
    handle_start,
    handle_callback,
    handle_message,
    handle_document,
    LESSON_MENU,
    DRILLING,
)


def build_conversation_handler() -> ConversationHandler:
    """Create the conversation handler shared by the lesson menu and the drill."""
    state_handlers = [
        CallbackQueryHandler(handle_callback),
        MessageHandler(filters.Document.ALL, handle_document),
        MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message),
    ]
    return ConversationHandler(
        entry_points=[
            CommandHandler("start", handle_start),
            MessageHandler(filters.Document.ALL, handle_document),
        ],
        states={
            LESSON_MENU: state_handlers,
            DRILLING: state_handlers,
        },
        fallbacks=[CommandHandler("start", handle_start)],
        per_message=False,
    )


class VocabDrillBot:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            ensure_directories()
            init_db()
            self.logger.info("Database initialized")

            if settings.monitoring.enabled:
                start_monitoring(settings.monitoring.port)
                self.logger.info(f"Metrics exported on port {settings.monitoring.port}")

            self.application = Application.builder().token(settings.bot.token).build()
            self.application.add_handler(build_conversation_handler())
            self.logger.info("Handlers added")

            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.application:
            self.running = False
            return

        try:
            await self.application.updater.stop()
            await self.application.stop()
            await self.application.shutdown()
            self.logger.info("Application stopped")
        finally:
            self.running = False
            self.application = None
