"""Logging for the `iiif_citation` namespace.

Library modules only ask for namespaced loggers; handlers are attached once by
`setup_logging()`, which the CLI calls at start-up. Importing the library never
touches the filesystem.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

APP_LOGGER_NAME = "iiif_citation"
LOG_FILE_NAME = "app.log"

# When set, overrides the configured `paths.logs_dir` (tests point it at tmp dirs).
LOG_BASE_DIR: Path | None = None

CONSOLE_FORMAT = logging.Formatter("%(levelname)s | %(name)s | %(message)s")

FILE_FORMAT = logging.Formatter(
    "%(asctime)s [%(levelname)s] [%(name)s.%(funcName)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

app_logger = logging.getLogger(APP_LOGGER_NAME)
app_logger.propagate = True


def _logging_settings() -> tuple[str, bool]:
    from .config_manager import get_config_manager

    cm = get_config_manager()
    level = str(cm.get_setting("logging.level", "INFO") or "INFO").upper()
    return level, bool(cm.get_setting("logging.file", True))


def _log_dir() -> Path:
    if LOG_BASE_DIR is not None:
        return Path(LOG_BASE_DIR)
    from .config_manager import get_config_manager

    return get_config_manager().resolve_path("logs_dir", "data/local/logs")


def _attach_file_handler(level: int) -> Path | None:
    log_file = _log_dir() / LOG_FILE_NAME
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = TimedRotatingFileHandler(log_file, when="midnight", interval=1, backupCount=30, encoding="utf-8")
    except OSError as exc:
        app_logger.warning("File logging disabled, cannot write %s: %s", log_file, exc)
        return None
    handler.setFormatter(FILE_FORMAT)
    handler.setLevel(level)
    app_logger.addHandler(handler)
    return log_file


def setup_logging(level: str | None = None) -> None:
    """Attach a stderr console handler and, if enabled, a daily rotating file.

    stdout is reserved for the JSON batch. Calling this again only updates
    the level of the handlers already attached.
    """
    configured_level, file_enabled = _logging_settings()
    level_name = (level or configured_level).upper()
    effective_level = getattr(logging, level_name, logging.INFO)

    app_logger.setLevel(effective_level)
    if app_logger.handlers:
        for handler in app_logger.handlers:
            handler.setLevel(effective_level)
        return

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(CONSOLE_FORMAT)
    console_handler.setLevel(effective_level)
    app_logger.addHandler(console_handler)

    log_file = _attach_file_handler(effective_level) if file_enabled else None
    app_logger.debug("Logging initialized (Level: %s) -> %s", level_name, log_file or "console only")


def summarize_for_debug(data: str, max_chars: int = 200) -> str:
    """Summarize a large string for debug logs."""
    if not data or len(data) <= max_chars:
        return data
    return f"{data[:max_chars]}... [TRUNCATED, total {len(data)} chars]"


def get_logger(name: str) -> logging.Logger:
    """Get a logger within the 'iiif_citation' namespace."""
    if name != APP_LOGGER_NAME and not name.startswith(f"{APP_LOGGER_NAME}."):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
