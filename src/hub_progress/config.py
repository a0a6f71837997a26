"""Runtime settings read from the environment."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_DB_PATH = str(Path.home() / ".hub_progress" / "hub.db")


@dataclass
class Settings:
    db_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"
    log_file: Optional[str] = None
    learner_id: str = "local-learner"


def load_settings() -> Settings:
    """Build settings from HUB_* environment variables, falling back to defaults."""
    return Settings(
        db_path=os.getenv("HUB_DB_PATH", DEFAULT_DB_PATH),
        log_level=os.getenv("HUB_LOG_LEVEL", "INFO").upper(),
        log_file=os.getenv("HUB_LOG_FILE") or None,
        learner_id=os.getenv("HUB_LEARNER_ID", "local-learner"),
    )
