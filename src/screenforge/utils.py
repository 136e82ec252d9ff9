"""Utility functions for screenforge."""

import re
import sys
import unicodedata
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(
    log_level: str = "INFO",
    log_to_file: bool = False,
    log_to_stdout: bool = False,
    log_file: Optional[Path] = None,
) -> None:  # pragma: no cover
    """Configure loguru sinks.

    Removes the default stderr handler first so repeated calls do not stack
    handlers.

    Args:
        log_level: Minimum level to emit.
        log_to_file: Write to a rotating log file.
        log_to_stdout: Write to stderr (stdout is reserved for command output).
        log_file: Log file path, defaults to ~/.screenforge/screenforge.log.
    """
    logger.remove()

    if log_to_file:
        path = log_file or Path.home() / ".screenforge" / "screenforge.log"
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(path),
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            backtrace=True,
            diagnose=False,
            enqueue=False,
            colorize=False,
        )

    if log_to_stdout:
        logger.add(sys.stderr, level=log_level, backtrace=True, diagnose=False, colorize=True)

    logger.debug(f"Logging initialized at level {log_level}")


def strip_diacritics(value: str) -> str:
    """Remove combining accents: "Situação" -> "Situacao"."""
    normalized = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def to_label(value: str) -> str:
    """Turn an identifier into a human readable label.

    Examples:
        user_name -> User Name
        createdAt -> Created At
        post-id -> Post Id
    """
    text = strip_diacritics(str(value))
    text = re.sub(r"[_-]", " ", text)
    text = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    return re.sub(r"\b\w", lambda match: match.group(0).upper(), text)


def to_kebab(value: str) -> str:
    """Convert camelCase, snake_case or spaced text to kebab-case."""
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", str(value))
    text = re.sub(r"[_\s]+", "-", text)
    return text.lower()


def capitalize(value: str) -> str:
    """Uppercase the first character only, leaving the rest untouched."""
    if not value:
        return value
    return value[0].upper() + value[1:]
