"""Store and environment diagnostics for BabelChat.

This module inspects the data directory, the journal and the stored
collections so users get actionable guidance instead of silent drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .config import ChatConfig
from .errors import StorageError
from .repository import ChatRepository
from .store.keys import conversations_key, messages_key
from .translate import create_detector, create_translator


@dataclass
class CheckResult:
    """Represents a diagnostic check with status and human-readable detail."""

    name: str
    status: str  # ok | warn | error
    detail: str


def _check_backends(config: ChatConfig) -> CheckResult:
    try:
        translator = create_translator(config.translator_backend)
        create_detector(config.detector_backend)
    except ValueError as e:
        return CheckResult("Translation backend", "error", str(e))
    return CheckResult("Translation backend", "ok", f"{translator.name} / {config.detector_backend}")


def _check_store_dir(path: Optional[Path]) -> CheckResult:
    if path is None:
        return CheckResult("Store directory", "ok", "In-memory store")
    if not path.exists():
        return CheckResult("Store directory", "warn", f"{path} does not exist yet; it is created on first write")
    probe = path / ".probe"
    try:
        probe.write_text("", encoding="utf-8")
        probe.unlink()
    except OSError as e:
        return CheckResult("Store directory", "error", f"{path} is not writable: {e}")
    return CheckResult("Store directory", "ok", str(path))


def _check_session(repo: ChatRepository) -> CheckResult:
    session = repo.session_user()
    if not session.ok:
        return CheckResult("Session", "error", str(session.error))
    if session.value is None:
        return CheckResult("Session", "warn", "Nobody is signed in; run 'babelchat login'")
    return CheckResult("Session", "ok", f"Signed in as {session.value.username}")


def _check_journal(repo: ChatRepository, user_id: str) -> CheckResult:
    try:
        raw = repo.journal(user_id).pending()
    except StorageError as e:
        return CheckResult("Journal", "error", f"Cannot read intents: {e}")
    if raw:
        return CheckResult(
            "Journal",
            "warn",
            f"{len(raw)} interrupted write(s); run 'babelchat reconcile'",
        )
    return CheckResult("Journal", "ok", "No interrupted writes")


def _check_conversations(repo: ChatRepository, user_id: str) -> CheckResult:
    rows = repo.conversations(user_id)
    if not rows.ok:
        return CheckResult("Conversations", "error", f"{conversations_key(user_id)}: {rows.error}")
    seen: set[str] = set()
    duplicates = 0
    for row in rows.value:
        if row.chat_id in seen:
            duplicates += 1
        seen.add(row.chat_id)
    if duplicates:
        return CheckResult("Conversations", "warn", f"{duplicates} duplicate row(s) for the same chat")
    return CheckResult("Conversations", "ok", f"{len(rows.value)} conversation(s)")


def _check_stars(repo: ChatRepository, user_id: str) -> CheckResult:
    stars = repo.starred(user_id)
    if not stars.ok:
        return CheckResult("Starred messages", "error", str(stars.error))
    # Direct messages received by the user are logged under the user's own id.
    known: set[str] = set()
    for chat_id in {star.chat_id for star in stars.value} | {user_id}:
        log = repo.messages(chat_id)
        if not log.ok:
            return CheckResult("Starred messages", "error", f"{messages_key(chat_id)}: {log.error}")
        known.update(m.id for m in log.value)
    dangling = sum(1 for star in stars.value if star.message_id not in known)
    if dangling:
        return CheckResult("Starred messages", "warn", f"{dangling} star(s) point at deleted messages")
    return CheckResult("Starred messages", "ok", f"{len(stars.value)} star(s)")


def collect_diagnostics(
    repo: ChatRepository,
    store_path: Optional[Path] = None,
    user_id: Optional[str] = None,
    config: Optional[ChatConfig] = None,
) -> List[CheckResult]:
    """Run a series of lightweight checks and return their results."""

    checks: List[CheckResult] = []

    checks.append(_check_backends(config or ChatConfig()))

    checks.append(_check_store_dir(store_path))
    checks.append(_check_session(repo))

    if user_id:
        checks.append(_check_journal(repo, user_id))
        checks.append(_check_conversations(repo, user_id))
        checks.append(_check_stars(repo, user_id))

    return checks


def summarize_checks(checks: List[CheckResult]) -> Dict[str, int]:
    summary = {"ok": 0, "warn": 0, "error": 0}
    for c in checks:
        if c.status in summary:
            summary[c.status] += 1
    return summary
