"""Configuration settings for the drill bot."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
LESSONS_DIR = Path(os.getenv("LESSONS_DIR", str(DATA_DIR / "lessons")))

# Drill settings
MAX_DISTRACTORS = 5  # wrong answers shown next to the correct one
ADVANCE_DELAY = 1.5  # seconds between feedback and the next word
LESSON_FILE_PATTERN = "word{index}.txt"


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        LESSONS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    lessons_dir: Path = LESSONS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocabdrill.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")


@dataclass
class DrillSettings:
    """Drill session settings."""
    max_distractors: int = int(os.getenv("MAX_DISTRACTORS", str(MAX_DISTRACTORS)))
    advance_delay: float = float(os.getenv("ADVANCE_DELAY", str(ADVANCE_DELAY)))
    lesson_file_pattern: str = os.getenv("LESSON_FILE_PATTERN", LESSON_FILE_PATTERN)


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("MONITORING_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("MONITORING_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_drill_settings() -> DrillSettings:
    """Get drill settings."""
    return DrillSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    drill: DrillSettings = field(default_factory=get_drill_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.bot.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        if not 1 <= self.drill.max_distractors <= MAX_DISTRACTORS:
            raise ValueError(f"MAX_DISTRACTORS must be between 1 and {MAX_DISTRACTORS}")

        if self.drill.advance_delay < 0:
            raise ValueError("ADVANCE_DELAY cannot be negative")

        if "{index}" not in self.drill.lesson_file_pattern:
            raise ValueError("LESSON_FILE_PATTERN must contain '{index}'")


# Create global settings instance; validated by the entry point
settings = Settings()
