"""
Conversation/message manager: the core of BabelChat.

This module turns user intents into consistent updates across the stored
collections:
1. send: detect the source language, render the text once per recipient
   language, append the message to the chat log, fold it into the sender's
   (and optionally the receiver's) conversation row
2. read paths: message history, ordered conversation list, starred messages
3. conversation mutations: read, pin, archive, category, delete
4. annotations kept outside the message log: stars and reactions

Design Philosophy:
- The repository is injected, so the manager runs against a MemoryStore in
  tests and a JsonFileStore in the CLI
- Every public operation returns a Result; nothing raises across this
  boundary
- Writes that touch several keys go through one journal transaction, so a
  message is never visible without its conversation update (or vice versa)
- In-memory caches are only replaced after a successful write; a failed read
  hands back the last good cached value together with the error
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Union

from babelchat.config import ChatConfig
from babelchat.errors import (
    ArchivedConversationError,
    BlockedError,
    ChatError,
    InvalidInputError,
    PinLimitError,
)
from babelchat.models import (
    ChatTarget,
    Conversation,
    ConversationCategory,
    Group,
    MediaType,
    Message,
    MessageStatus,
    StarredMessage,
    User,
)
from babelchat.repository import ChatRepository, Reactions, Write
from babelchat.results import Result
from babelchat.translate.base import (
    LanguageDetector,
    Translator,
    create_detector,
    create_translator,
)

logger = logging.getLogger(__name__)

# A mutation returns the updated row, or the error that rejects it.
RowMutation = Callable[[Conversation, list[Conversation]], Union[Conversation, ChatError]]


def _now_ms() -> int:
    return int(time.time() * 1000)


def sort_conversations(conversations: list[Conversation]) -> list[Conversation]:
    """Pinned first, then newest last message first.

    Conversations without a message sort as timestamp 0 within their group.
    The sort is stable, so equal keys keep their stored order.
    """
    return sorted(conversations, key=lambda c: (not c.is_pinned, -c.sort_timestamp))


@dataclass
class StarredItem:
    """A star resolved against its message."""
    star: StarredMessage
    message: Message


class ConversationManager:
    """Single point of truth for one signed-in user's chats.

    Usage:
        repo = ChatRepository(JsonFileStore(store_dir()))
        manager = ConversationManager(repo, user)

        result = manager.send(ChatTarget.user(peer_id), "Hello")
        if result.ok:
            print(result.value.translated_text)
    """

    def __init__(
        self,
        repository: ChatRepository,
        user: User,
        config: ChatConfig | None = None,
        translator: Translator | None = None,
        detector: LanguageDetector | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self.repo = repository
        self.user = user
        self.config = config or ChatConfig()
        self.translator = translator or create_translator(self.config.translator_backend)
        self.detector = detector or create_detector(
            self.config.detector_backend, default=self.config.default_language
        )
        self.clock = clock or _now_ms

        self._conversations: list[Conversation] = []
        self._messages: dict[str, list[Message]] = {}
        self._typing: dict[str, bool] = {}

    @property
    def user_id(self) -> str:
        return self.user.id

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}_{self.clock()}_{uuid.uuid4().hex[:6]}"

    # ------------------------------------------------------------------
    # Translation helpers (failures degrade, never abort a send)
    # ------------------------------------------------------------------

    def _detect(self, text: str) -> str:
        try:
            return self.detector.detect(text)
        except Exception as e:
            logger.warning(f"Language detection failed, assuming {self.config.default_language}: {e}")
            return self.config.default_language

    def _translate(self, text: str, source_lang: str, target_lang: str) -> str:
        try:
            return self.translator.translate(text, source_lang, target_lang).text
        except Exception as e:
            logger.warning(f"Translation {source_lang}->{target_lang} failed, keeping original: {e}")
            return text

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def reconcile(self) -> Result[int]:
        """Resolve journal intents left by an interrupted write, then reload."""
        result = self.repo.reconcile(self.user_id)
        if result.ok and result.value:
            logger.info(f"Reconciled {result.value} interrupted write(s) for {self.user_id}")
            self._messages.clear()
            self.load_conversations()
        return result

    # ------------------------------------------------------------------
    # Send
    # ------------------------------------------------------------------

    def _recipient_languages(
        self,
        target: ChatTarget,
        receiver: Optional[User],
        group: Optional[Group],
    ) -> list[str]:
        if target.is_group:
            if group is None:
                return []
            return [m.preferred_language for m in group.members if m.user_id != self.user_id]
        return [receiver.preferred_language] if receiver else []

    def _fold_message(
        self,
        rows: list[Conversation],
        target: ChatTarget,
        message: Message,
        unread_delta: int = 0,
    ) -> list[Conversation]:
        """Find-or-create the row for ``target`` and point it at ``message``."""
        rows = list(rows)
        for i, row in enumerate(rows):
            if row.matches(target):
                changes = {}
                if row.last_message is None or message.timestamp >= row.last_message.timestamp:
                    changes["last_message"] = message
                if unread_delta:
                    changes["unread_count"] = row.unread_count + unread_delta
                rows[i] = row.with_changes(**changes)
                return rows

        created = Conversation(
            id=self._new_id("conv"),
            user_id=target.user_id,
            group_id=target.group_id,
            last_message=message,
            unread_count=unread_delta,
            is_group=target.is_group,
        )
        return [created] + rows

    def send(
        self,
        target: ChatTarget,
        text: str,
        *,
        media_type: MediaType | None = None,
        media_url: str | None = None,
        forwarded_from: str | None = None,
        reply_to: str | None = None,
    ) -> Result[Message]:
        """Send ``text`` to a user or group.

        Returns the logged message. Invalid input (no target, both targets,
        empty text) is rejected without logging; storage failures leave every
        collection as it was.
        """
        if not target.is_valid or not text or not text.strip():
            return Result.failure(InvalidInputError("A message needs one chat target and non-empty text"))

        users_result = self.repo.users()
        if not users_result.ok:
            return Result.failure(users_result.error)
        users = {u.id: u for u in users_result.value}
        receiver = users.get(target.user_id) if target.user_id else None
        group = None
        if target.is_group:
            group_result = self.repo.find_group(target.group_id)
            if not group_result.ok:
                return Result.failure(group_result.error)
            group = group_result.value

        if receiver is not None and self.config.reject_blocked:
            sender = users.get(self.user_id, self.user)
            if sender.has_blocked(receiver.id) or self.user.has_blocked(receiver.id) or receiver.has_blocked(self.user_id):
                logger.info(f"Send from {self.user_id} to {receiver.id} rejected: blocked")
                return Result.failure(BlockedError(f"Messages between {self.user_id} and {receiver.id} are blocked"))

        source_lang = self._detect(text)
        languages = [
            lang for lang in dict.fromkeys(self._recipient_languages(target, receiver, group))
            if lang != source_lang
        ]
        translations = {lang: self._translate(text, source_lang, lang) for lang in languages}

        if target.is_group:
            translated_language = languages[0] if languages else source_lang
        else:
            translated_language = receiver.preferred_language if receiver else source_lang
        translated_text = translations.get(translated_language, text)

        timestamp = self.clock()
        message = Message(
            id=self._new_id("msg"),
            sender_id=self.user_id,
            receiver_id=target.user_id,
            group_id=target.group_id,
            original_text=text,
            original_language=source_lang,
            translated_text=translated_text,
            translated_language=translated_language,
            translations=translations,
            timestamp=timestamp,
            status=MessageStatus.SENT,
            media_type=media_type,
            media_url=media_url,
            forwarded_from=forwarded_from,
            reply_to=reply_to,
        )

        chat_id = target.chat_id
        log = self.repo.messages(chat_id)
        if not log.ok:
            return Result.failure(log.error)
        own_rows = self.repo.conversations(self.user_id)
        if not own_rows.ok:
            return Result.failure(own_rows.error)

        new_log = log.value + [message]
        new_rows = self._fold_message(own_rows.value, target, message)
        writes: list[Write] = [
            self.repo.messages_write(chat_id, new_log),
            self.repo.conversations_write(self.user_id, new_rows),
        ]

        if (
            self.config.deliver_to_peer
            and receiver is not None
            and receiver.id != self.user_id
        ):
            peer_rows = self.repo.conversations(receiver.id)
            if not peer_rows.ok:
                return Result.failure(peer_rows.error)
            folded = self._fold_message(peer_rows.value, ChatTarget.user(self.user_id), message, unread_delta=1)
            writes.append(self.repo.conversations_write(receiver.id, folded))

        committed = self.repo.transaction(self.user_id, writes, label="send")
        if not committed.ok:
            return Result.failure(committed.error)

        self._messages[chat_id] = self._messages.get(chat_id, []) + [message]
        self._conversations = new_rows
        logger.debug(f"Sent {message.id} to {chat_id} ({source_lang} -> {sorted(translations) or 'no translation'})")
        return Result.success(message)

    def forward_message(self, message: Message, targets: list[ChatTarget]) -> list[Result[Message]]:
        """Re-send a message's original text to each target."""
        return [
            self.send(
                target,
                message.original_text,
                media_type=message.media_type,
                media_url=message.media_url,
                forwarded_from=message.sender_id,
            )
            for target in targets
        ]

    def translate_for_reader(self, message: Message, language: str | None = None) -> str:
        """Render a logged message in ``language`` (default: the user's)."""
        language = language or self.user.preferred_language
        if (
            language == message.original_language
            or language in message.translations
            or (language == message.translated_language and message.translated_text is not None)
        ):
            return message.text_for(language)
        return self._translate(message.original_text, message.original_language, language)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _read_chat(self, chat_id: str) -> Result[list[Message]]:
        """Messages between the user and ``chat_id``, oldest first.

        A group log is read as stored. Direct logs are keyed by receiver, so
        a direct chat joins what the user sent to the peer with what the peer
        sent to the user.
        """
        if ChatTarget.parse(chat_id).is_group:
            return self.repo.messages(chat_id)
        outbound = self.repo.messages(chat_id)
        if not outbound.ok:
            return outbound
        sent = [m for m in outbound.value if m.sender_id == self.user_id]
        if chat_id == self.user_id:
            return Result.success(sent)
        inbound = self.repo.messages(self.user_id)
        if not inbound.ok:
            return inbound
        received = [m for m in inbound.value if m.sender_id == chat_id]
        return Result.success(sorted(sent + received, key=lambda m: m.timestamp))

    def load_messages(self, chat_id: str) -> Result[list[Message]]:
        """Chronological history of a chat; empty if there is none yet.

        On a storage failure the value is the last cached history (or empty).
        """
        result = self._read_chat(chat_id)
        if not result.ok:
            return Result.failure(result.error, value=list(self._messages.get(chat_id, [])))
        self._messages[chat_id] = result.value
        return Result.success(list(result.value))

    def delete_message(self, chat_id: str, message_id: str) -> Result[bool]:
        """Remove a message and its reactions; repoint rows that showed it."""
        view = self._read_chat(chat_id)
        if not view.ok:
            return Result.failure(view.error, value=False)
        target = next((m for m in view.value if m.id == message_id), None)
        if target is None:
            return Result.success(False)
        log = self.repo.messages(target.chat_id)
        if not log.ok:
            return Result.failure(log.error, value=False)
        new_log = [m for m in log.value if m.id != message_id]
        new_view = [m for m in view.value if m.id != message_id]

        reactions = self.repo.reactions(chat_id)
        if not reactions.ok:
            return Result.failure(reactions.error, value=False)
        rows = self.repo.conversations(self.user_id)
        if not rows.ok:
            return Result.failure(rows.error, value=False)

        writes: list[Write] = [self.repo.messages_write(target.chat_id, new_log)]
        if message_id in reactions.value:
            remaining = {k: v for k, v in reactions.value.items() if k != message_id}
            writes.append(self.repo.reactions_write(chat_id, remaining))

        tail = new_view[-1] if new_view else None
        new_rows = [
            row.with_changes(last_message=tail)
            if row.addresses(chat_id) and row.last_message and row.last_message.id == message_id
            else row
            for row in rows.value
        ]
        if new_rows != rows.value:
            writes.append(self.repo.conversations_write(self.user_id, new_rows))

        if not target.group_id and chat_id != self.user_id:
            peer_rows = self.repo.conversations(chat_id)
            if not peer_rows.ok:
                return Result.failure(peer_rows.error, value=False)
            # The peer sees the same direct history, so its tail is ours.
            unread_delta = 1 if target.sender_id == self.user_id else 0
            repointed = [
                row.with_changes(last_message=tail, unread_count=max(0, row.unread_count - unread_delta))
                if row.addresses(self.user_id) and row.last_message and row.last_message.id == message_id
                else row
                for row in peer_rows.value
            ]
            if repointed != peer_rows.value:
                writes.append(self.repo.conversations_write(chat_id, repointed))

        committed = self.repo.transaction(self.user_id, writes, label="delete-message")
        if not committed.ok:
            return Result.failure(committed.error, value=False)
        self._messages[chat_id] = new_view
        self._conversations = new_rows
        return Result.success(True)

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    @property
    def conversations(self) -> list[Conversation]:
        """Cached rows as last loaded or written."""
        return list(self._conversations)

    def load_conversations(self) -> Result[list[Conversation]]:
        result = self.repo.conversations(self.user_id)
        if not result.ok:
            return Result.failure(result.error, value=list(self._conversations))
        self._conversations = result.value
        return Result.success(list(result.value))

    def list_conversations(self, include_archived: bool = False) -> Result[list[Conversation]]:
        """Conversation rows in display order (see ``sort_conversations``)."""
        loaded = self.load_conversations()
        rows = [c for c in loaded.value if include_archived or not c.is_archived]
        return Result(value=sort_conversations(rows), error=loaded.error)

    def archived_conversations(self) -> Result[list[Conversation]]:
        loaded = self.load_conversations()
        rows = [c for c in loaded.value if c.is_archived]
        return Result(value=sort_conversations(rows), error=loaded.error)

    def unread_total(self) -> int:
        return sum(c.unread_count for c in self._conversations if not c.is_archived)

    def _find_index(self, rows: list[Conversation], chat_id: str) -> Optional[int]:
        for i, row in enumerate(rows):
            if row.id == chat_id or row.addresses(chat_id):
                return i
        return None

    def _mutate(self, chat_id: str, label: str, mutation: RowMutation) -> Result[Optional[Conversation]]:
        """Apply ``mutation`` to the row for ``chat_id``.

        A missing row is a silent no-op (value None). A mutation that returns
        an error leaves the row unchanged and reports the rejection.
        """
        loaded = self.repo.conversations(self.user_id)
        if not loaded.ok:
            return Result.failure(loaded.error)
        rows = loaded.value
        index = self._find_index(rows, chat_id)
        if index is None:
            self._conversations = rows
            return Result.success(None)

        current = rows[index]
        outcome = mutation(current, rows)
        if isinstance(outcome, ChatError):
            logger.info(f"{label} on {chat_id} rejected: {outcome}")
            self._conversations = rows
            return Result.failure(outcome, value=current)
        if outcome == current:
            self._conversations = rows
            return Result.success(current)

        rows[index] = outcome
        saved = self.repo.save_conversations(self.user_id, rows)
        if not saved.ok:
            return Result.failure(saved.error, value=current)
        self._conversations = rows
        return Result.success(outcome)

    def mark_as_read(self, chat_id: str) -> Result[bool]:
        """Zero the unread count of every row addressed to ``chat_id``.

        Value is True if at least one row matched. Calling it again is a
        no-op that writes nothing.
        """
        loaded = self.repo.conversations(self.user_id)
        if not loaded.ok:
            return Result.failure(loaded.error, value=False)
        rows = loaded.value
        matched = [row for row in rows if row.addresses(chat_id)]
        if not any(row.unread_count for row in matched):
            self._conversations = rows
            return Result.success(bool(matched))

        rows = [row.with_changes(unread_count=0) if row.addresses(chat_id) else row for row in rows]
        saved = self.repo.save_conversations(self.user_id, rows)
        if not saved.ok:
            return Result.failure(saved.error, value=True)
        self._conversations = rows
        return Result.success(True)

    def pin(self, chat_id: str) -> Result[Optional[Conversation]]:
        """Pin a conversation.

        Rejected with PinLimitError when ``max_pinned`` unarchived rows are
        already pinned, and with ArchivedConversationError for archived rows.
        """
        limit = self.config.max_pinned

        def mutation(row: Conversation, rows: list[Conversation]):
            if row.is_archived:
                return ArchivedConversationError("Unarchive the conversation before pinning it")
            if row.is_pinned:
                return row
            pinned = sum(1 for r in rows if r.is_pinned and not r.is_archived)
            if pinned >= limit:
                return PinLimitError(limit)
            return row.with_changes(is_pinned=True)

        return self._mutate(chat_id, "pin", mutation)

    def unpin(self, chat_id: str) -> Result[Optional[Conversation]]:
        return self._mutate(chat_id, "unpin", lambda row, rows: row.with_changes(is_pinned=False))

    def archive(self, chat_id: str) -> Result[Optional[Conversation]]:
        """Archive a conversation; archiving also un-pins it."""
        return self._mutate(
            chat_id, "archive", lambda row, rows: row.with_changes(is_archived=True, is_pinned=False)
        )

    def unarchive(self, chat_id: str) -> Result[Optional[Conversation]]:
        return self._mutate(chat_id, "unarchive", lambda row, rows: row.with_changes(is_archived=False))

    def set_category(
        self,
        chat_id: str,
        category: ConversationCategory | str | None,
    ) -> Result[Optional[Conversation]]:
        if isinstance(category, str):
            try:
                category = ConversationCategory(category)
            except ValueError:
                return Result.failure(InvalidInputError(f"Unknown category: {category}"))
        return self._mutate(chat_id, "category", lambda row, rows: row.with_changes(category=category))

    def delete_conversation(self, chat_id: str) -> Result[Optional[Conversation]]:
        """Remove the row for ``chat_id``; the message log is kept."""
        loaded = self.repo.conversations(self.user_id)
        if not loaded.ok:
            return Result.failure(loaded.error)
        rows = loaded.value
        index = self._find_index(rows, chat_id)
        if index is None:
            self._conversations = rows
            return Result.success(None)
        removed = rows.pop(index)
        saved = self.repo.save_conversations(self.user_id, rows)
        if not saved.ok:
            return Result.failure(saved.error)
        self._conversations = rows
        return Result.success(removed)

    # ------------------------------------------------------------------
    # Stars and reactions
    # ------------------------------------------------------------------

    def toggle_star(self, chat_id: str, message_id: str) -> Result[bool]:
        """Star or unstar a message; value is True when it is now starred."""
        if not chat_id or not message_id:
            return Result.failure(InvalidInputError("chat_id and message_id are required"))
        loaded = self.repo.starred(self.user_id)
        if not loaded.ok:
            return Result.failure(loaded.error, value=False)
        stars = loaded.value
        if any(s.message_id == message_id for s in stars):
            updated = [s for s in stars if s.message_id != message_id]
            now_starred = False
        else:
            updated = stars + [StarredMessage(message_id, self.user_id, chat_id, self.clock())]
            now_starred = True
        saved = self.repo.save_starred(self.user_id, updated)
        if not saved.ok:
            return Result.failure(saved.error, value=not now_starred)
        return Result.success(now_starred)

    def starred_ids(self) -> set[str]:
        return {s.message_id for s in (self.repo.starred(self.user_id).value or [])}

    def starred_messages(self, sort_by: str = "date") -> Result[list[StarredItem]]:
        """Stars resolved against their chat logs.

        Stars whose message no longer exists are dropped. ``sort_by`` is
        ``date`` (newest star first) or ``chat`` (grouped by chat id).
        """
        loaded = self.repo.starred(self.user_id)
        if not loaded.ok:
            return Result.failure(loaded.error, value=[])

        logs: dict[str, dict[str, Message]] = {}
        items: list[StarredItem] = []
        error = None
        for star in loaded.value:
            if star.chat_id not in logs:
                log = self._read_chat(star.chat_id)
                if not log.ok:
                    error = log.error
                logs[star.chat_id] = {m.id: m for m in (log.value or [])}
            message = logs[star.chat_id].get(star.message_id)
            if message is not None:
                items.append(StarredItem(star=star, message=message))

        items.sort(key=lambda item: item.star.created_at, reverse=True)
        if sort_by == "chat":
            items.sort(key=lambda item: item.star.chat_id)
        return Result(value=items, error=error)

    def reactions(self, chat_id: str) -> Result[Reactions]:
        result = self.repo.reactions(chat_id)
        if not result.ok:
            return Result.failure(result.error, value={})
        return result

    def react(self, chat_id: str, message_id: str, emoji: str) -> Result[dict[str, int]]:
        """Add one ``emoji`` reaction; value is the message's updated counts."""
        if not chat_id or not message_id or not emoji:
            return Result.failure(InvalidInputError("chat_id, message_id and emoji are required"))
        loaded = self.repo.reactions(chat_id)
        if not loaded.ok:
            return Result.failure(loaded.error, value={})
        reactions = loaded.value
        counts = dict(reactions.get(message_id, {}))
        counts[emoji] = counts.get(emoji, 0) + 1
        reactions[message_id] = counts
        saved = self.repo.save_reactions(chat_id, reactions)
        if not saved.ok:
            return Result.failure(saved.error, value={})
        return Result.success(counts)

    # ------------------------------------------------------------------
    # Typing indicators (in-memory only)
    # ------------------------------------------------------------------

    @property
    def typing(self) -> dict[str, bool]:
        return dict(self._typing)

    def set_typing(self, chat_id: str, typing: bool) -> None:
        self._typing[chat_id] = typing

    def is_typing(self, chat_id: str) -> bool:
        return self._typing.get(chat_id, False)
