"""
Project-wide configuration and directory structure.

This module defines the paths and tunables used throughout BabelChat.
Paths resolve against ``BABELCHAT_HOME`` so tests and multiple profiles can
point the whole application at a scratch directory.

Module Contents:
    APP_NAME: Application name for display purposes
    DATA_DIR: Main data directory (defaults to ~/.babelchat)
    STORE_DIR: Directory holding one JSON document per storage key
    MAX_PINNED: Maximum number of pinned, unarchived conversations per user
    DEFAULT_LANGUAGE: Language assumed when detection finds nothing better
    ChatConfig: Runtime options for the conversation manager

Unlike the store itself, directories are only created on demand through
``ensure_dirs()`` so importing the package never touches the filesystem.

Example:
    >>> from babelchat.config import ChatConfig, STORE_DIR
    >>> config = ChatConfig.from_env()
    >>> print(config.max_pinned, STORE_DIR)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Application name for display and identification
APP_NAME = "BabelChat"

# Environment variable that relocates all on-disk state
HOME_ENV_VAR = "BABELCHAT_HOME"

# Main data directory
DATA_DIR = Path(os.getenv(HOME_ENV_VAR, Path.home() / ".babelchat")).expanduser()

# Key/value documents live here, one file per key
STORE_DIR = DATA_DIR / "store"

# Pin policy: at most this many pinned-and-unarchived conversations
MAX_PINNED = 5

# Fallback language for detection and unknown recipients
DEFAULT_LANGUAGE = "en"

_TRUTHY = {"1", "true", "yes", "on"}


def data_dir() -> Path:
    """Resolve the data directory, honouring a changed environment."""
    return Path(os.getenv(HOME_ENV_VAR, DATA_DIR)).expanduser()


def store_dir() -> Path:
    return data_dir() / "store"


def ensure_dirs() -> Path:
    """Create the data and store directories; return the store directory."""
    path = store_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


@dataclass
class ChatConfig:
    """Configuration for the conversation manager.

    Attributes:
        max_pinned: Pin limit enforced by ``ConversationManager.pin``
        default_language: Language used when a recipient is unknown
        translator_backend: Name passed to ``create_translator``
        detector_backend: Name passed to ``create_detector``
        deliver_to_peer: Also update the receiver's conversation row (with an
            unread increment) when sending a direct message
        reject_blocked: Refuse direct sends between users where either side
            has blocked the other
    """
    max_pinned: int = MAX_PINNED
    default_language: str = DEFAULT_LANGUAGE
    translator_backend: str = "phrasebook"
    detector_backend: str = "script"
    deliver_to_peer: bool = True
    reject_blocked: bool = True

    @classmethod
    def from_env(cls) -> ChatConfig:
        """Build a config from ``BABELCHAT_*`` environment variables."""
        config = cls()
        if value := os.getenv("BABELCHAT_MAX_PINNED"):
            try:
                config.max_pinned = max(0, int(value))
            except ValueError:
                logger.warning(f"Ignoring BABELCHAT_MAX_PINNED={value!r}; using {config.max_pinned}")
        if value := os.getenv("BABELCHAT_TRANSLATOR"):
            config.translator_backend = value
        if value := os.getenv("BABELCHAT_DELIVER_TO_PEER"):
            config.deliver_to_peer = value.strip().lower() in _TRUTHY
        return config

    def to_dict(self) -> dict:
        """Serialize config for logging/debugging."""
        return {
            "max_pinned": self.max_pinned,
            "default_language": self.default_language,
            "translator_backend": self.translator_backend,
            "detector_backend": self.detector_backend,
            "deliver_to_peer": self.deliver_to_peer,
            "reject_blocked": self.reject_blocked,
        }
