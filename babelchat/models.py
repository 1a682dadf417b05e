"""
Core data models for BabelChat.

These records mirror the JSON documents kept in the device store. Field names
on disk are camelCase (``originalText``, ``unreadCount``...) so existing
on-device data loads unchanged; in Python the attributes are snake_case.

Design Philosophy:
- Plain dataclasses: services copy and replace records rather than patching
  shared state
- Serializable: every model round-trips through ``to_dict``/``from_dict``
- Lossless: unknown on-disk fields are kept in ``extra`` and written back
- Messages are immutable once logged; stars and reactions live in their own
  collections keyed by message id
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class MessageStatus(str, Enum):
    """Delivery state of a message."""
    SENDING = "sending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    VOICE = "voice"
    LOCATION = "location"
    CONTACT = "contact"


class ConversationCategory(str, Enum):
    PERSONAL = "personal"
    WORK = "work"
    GROUPS = "groups"


GROUP_ID_PREFIX = "group_"


def _compact(d: dict) -> dict:
    """Drop ``None`` values, like optional fields left undefined on disk."""
    return {k: v for k, v in d.items() if v is not None}


def _extra(d: dict, known: set[str]) -> dict:
    return {k: v for k, v in d.items() if k not in known}


@dataclass(frozen=True)
class ChatTarget:
    """Where a message goes: exactly one of a user id or a group id."""
    user_id: Optional[str] = None
    group_id: Optional[str] = None

    @classmethod
    def user(cls, user_id: str) -> ChatTarget:
        return cls(user_id=user_id)

    @classmethod
    def group(cls, group_id: str) -> ChatTarget:
        return cls(group_id=group_id)

    @classmethod
    def parse(cls, chat_id: str) -> ChatTarget:
        """Infer the target kind from a chat id (group ids carry ``group_``)."""
        if chat_id.startswith(GROUP_ID_PREFIX):
            return cls(group_id=chat_id)
        return cls(user_id=chat_id)

    @property
    def is_valid(self) -> bool:
        return bool(self.user_id) != bool(self.group_id)

    @property
    def is_group(self) -> bool:
        return bool(self.group_id)

    @property
    def chat_id(self) -> str:
        return self.group_id or self.user_id or ""


@dataclass
class UserStatus:
    type: str = "available"  # available | busy | dnd | custom
    custom_text: Optional[str] = None
    expires_at: Optional[int] = None

    def to_dict(self) -> dict:
        return _compact({
            "type": self.type,
            "customText": self.custom_text,
            "expiresAt": self.expires_at,
        })

    @classmethod
    def from_dict(cls, d: dict) -> UserStatus:
        return cls(
            type=d.get("type", "available"),
            custom_text=d.get("customText"),
            expires_at=d.get("expiresAt"),
        )


@dataclass
class PrivacySettings:
    show_last_seen: bool = True
    show_status: bool = True
    show_online: bool = True

    def to_dict(self) -> dict:
        return {
            "showLastSeen": self.show_last_seen,
            "showStatus": self.show_status,
            "showOnline": self.show_online,
        }

    @classmethod
    def from_dict(cls, d: dict) -> PrivacySettings:
        return cls(
            show_last_seen=d.get("showLastSeen", True),
            show_status=d.get("showStatus", True),
            show_online=d.get("showOnline", True),
        )


@dataclass
class User:
    """A registered user.

    Credentials are only written to the ``users`` collection; the session
    copy under the ``user`` key is serialized with ``include_credentials=False``.
    """
    id: str
    username: str
    display_name: str
    preferred_language: str = "en"
    contacts: list[str] = field(default_factory=list)
    avatar: Optional[str] = None
    emoji_status: Optional[str] = None
    status: Optional[UserStatus] = None
    last_seen: Optional[int] = None
    blocked_users: list[str] = field(default_factory=list)
    privacy_settings: Optional[PrivacySettings] = None
    password_hash: Optional[str] = None
    password_salt: Optional[str] = None
    legacy_password: Optional[str] = None
    extra: dict = field(default_factory=dict)

    _FIELDS = {
        "id", "username", "displayName", "preferredLanguage", "contacts",
        "avatar", "emojiStatus", "status", "lastSeen", "blockedUsers",
        "privacySettings", "passwordHash", "passwordSalt", "password",
    }

    def has_blocked(self, user_id: str) -> bool:
        return user_id in self.blocked_users

    def to_dict(self, include_credentials: bool = True) -> dict:
        d = dict(self.extra)
        d.update(_compact({
            "id": self.id,
            "username": self.username,
            "displayName": self.display_name,
            "preferredLanguage": self.preferred_language,
            "contacts": list(self.contacts),
            "avatar": self.avatar,
            "emojiStatus": self.emoji_status,
            "status": self.status.to_dict() if self.status else None,
            "lastSeen": self.last_seen,
            "blockedUsers": list(self.blocked_users),
            "privacySettings": self.privacy_settings.to_dict() if self.privacy_settings else None,
        }))
        if include_credentials:
            d.update(_compact({
                "passwordHash": self.password_hash,
                "passwordSalt": self.password_salt,
                "password": self.legacy_password,
            }))
        return d

    @classmethod
    def from_dict(cls, d: dict) -> User:
        return cls(
            id=d["id"],
            username=d.get("username", ""),
            display_name=d.get("displayName", d.get("username", "")),
            preferred_language=d.get("preferredLanguage", "en"),
            contacts=list(d.get("contacts", [])),
            avatar=d.get("avatar"),
            emoji_status=d.get("emojiStatus"),
            status=UserStatus.from_dict(d["status"]) if d.get("status") else None,
            last_seen=d.get("lastSeen"),
            blocked_users=list(d.get("blockedUsers", [])),
            privacy_settings=PrivacySettings.from_dict(d["privacySettings"]) if d.get("privacySettings") else None,
            password_hash=d.get("passwordHash"),
            password_salt=d.get("passwordSalt"),
            legacy_password=d.get("password"),
            extra=_extra(d, cls._FIELDS),
        )


@dataclass
class GroupMember:
    user_id: str
    preferred_language: str = "en"
    joined_at: int = 0
    is_muted: bool = False
    role: str = "member"  # admin | member

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "joinedAt": self.joined_at,
            "preferredLanguage": self.preferred_language,
            "isMuted": self.is_muted,
            "role": self.role,
        }

    @classmethod
    def from_dict(cls, d: dict) -> GroupMember:
        return cls(
            user_id=d["userId"],
            preferred_language=d.get("preferredLanguage", "en"),
            joined_at=d.get("joinedAt", 0),
            is_muted=d.get("isMuted", False),
            role=d.get("role", "member"),
        )


@dataclass
class Group:
    """A group chat and its members' language preferences."""
    id: str
    name: str
    members: list[GroupMember] = field(default_factory=list)
    admins: list[str] = field(default_factory=list)
    created_by: str = ""
    created_at: int = 0
    description: Optional[str] = None
    photo: Optional[str] = None
    invite_link: Optional[str] = None
    invite_link_expiry: Optional[int] = None
    is_private: bool = False
    extra: dict = field(default_factory=dict)

    _FIELDS = {
        "id", "name", "members", "admins", "createdBy", "createdAt",
        "description", "photo", "inviteLink", "inviteLinkExpiry", "isPrivate",
    }

    @property
    def member_ids(self) -> list[str]:
        return [m.user_id for m in self.members]

    def member(self, user_id: str) -> Optional[GroupMember]:
        for m in self.members:
            if m.user_id == user_id:
                return m
        return None

    def to_dict(self) -> dict:
        d = dict(self.extra)
        d.update(_compact({
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "photo": self.photo,
            "members": [m.to_dict() for m in self.members],
            "admins": list(self.admins),
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "inviteLink": self.invite_link,
            "inviteLinkExpiry": self.invite_link_expiry,
            "isPrivate": self.is_private,
        }))
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Group:
        return cls(
            id=d["id"],
            name=d.get("name", ""),
            members=[GroupMember.from_dict(m) for m in d.get("members", [])],
            admins=list(d.get("admins", [])),
            created_by=d.get("createdBy", ""),
            created_at=d.get("createdAt", 0),
            description=d.get("description"),
            photo=d.get("photo"),
            invite_link=d.get("inviteLink"),
            invite_link_expiry=d.get("inviteLinkExpiry"),
            is_private=d.get("isPrivate", False),
            extra=_extra(d, cls._FIELDS),
        )


@dataclass
class Message:
    """A single logged message.

    ``translated_text`` is the rendering for the direct receiver (or the
    first differing group language); ``translations`` holds one rendering per
    distinct recipient language that differs from ``original_language``.
    """
    id: str
    sender_id: str
    original_text: str
    original_language: str
    timestamp: int
    receiver_id: Optional[str] = None
    group_id: Optional[str] = None
    translated_text: Optional[str] = None
    translated_language: Optional[str] = None
    translations: dict[str, str] = field(default_factory=dict)
    status: MessageStatus = MessageStatus.SENT
    media_type: Optional[MediaType] = None
    media_url: Optional[str] = None
    forwarded_from: Optional[str] = None
    reply_to: Optional[str] = None
    extra: dict = field(default_factory=dict)

    _FIELDS = {
        "id", "senderId", "receiverId", "groupId", "originalText",
        "originalLanguage", "translatedText", "translatedLanguage",
        "translations", "timestamp", "status", "mediaType", "mediaUrl",
        "forwardedFrom", "replyTo",
    }

    @property
    def chat_id(self) -> str:
        return self.group_id or self.receiver_id or ""

    def text_for(self, language: str) -> str:
        """Best stored rendering of this message for a reader's language."""
        if language == self.original_language:
            return self.original_text
        if language in self.translations:
            return self.translations[language]
        if language == self.translated_language and self.translated_text is not None:
            return self.translated_text
        return self.original_text

    def to_dict(self) -> dict:
        d = dict(self.extra)
        d.update(_compact({
            "id": self.id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "groupId": self.group_id,
            "originalText": self.original_text,
            "originalLanguage": self.original_language,
            "translatedText": self.translated_text,
            "translatedLanguage": self.translated_language,
            "translations": dict(self.translations) if self.translations else None,
            "timestamp": self.timestamp,
            "status": self.status.value,
            "mediaType": self.media_type.value if self.media_type else None,
            "mediaUrl": self.media_url,
            "forwardedFrom": self.forwarded_from,
            "replyTo": self.reply_to,
        }))
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Message:
        return cls(
            id=d["id"],
            sender_id=d.get("senderId", ""),
            receiver_id=d.get("receiverId"),
            group_id=d.get("groupId"),
            original_text=d.get("originalText", ""),
            original_language=d.get("originalLanguage", "en"),
            translated_text=d.get("translatedText"),
            translated_language=d.get("translatedLanguage"),
            translations=dict(d.get("translations") or {}),
            timestamp=d.get("timestamp", 0),
            status=MessageStatus(d.get("status", "sent")),
            media_type=MediaType(d["mediaType"]) if d.get("mediaType") else None,
            media_url=d.get("mediaUrl"),
            forwarded_from=d.get("forwardedFrom"),
            reply_to=d.get("replyTo"),
            extra=_extra(d, cls._FIELDS),
        )


@dataclass
class Conversation:
    """Per-user summary row for one chat target."""
    id: str
    user_id: Optional[str] = None
    group_id: Optional[str] = None
    last_message: Optional[Message] = None
    unread_count: int = 0
    is_group: bool = False
    is_pinned: bool = False
    is_archived: bool = False
    category: Optional[ConversationCategory] = None
    custom_background: Optional[str] = None
    extra: dict = field(default_factory=dict)

    _FIELDS = {
        "id", "userId", "groupId", "lastMessage", "unreadCount", "isGroup",
        "isPinned", "isArchived", "category", "customBackground",
    }

    @property
    def chat_id(self) -> str:
        return self.group_id or self.user_id or ""

    @property
    def sort_timestamp(self) -> int:
        return self.last_message.timestamp if self.last_message else 0

    def addresses(self, chat_id: str) -> bool:
        return bool(chat_id) and (self.group_id == chat_id or self.user_id == chat_id)

    def matches(self, target: ChatTarget) -> bool:
        if target.is_group:
            return self.group_id == target.group_id
        return not self.group_id and self.user_id == target.user_id

    def with_changes(self, **changes) -> Conversation:
        return replace(self, **changes)

    def to_dict(self) -> dict:
        d = dict(self.extra)
        d.update(_compact({
            "id": self.id,
            "userId": self.user_id,
            "groupId": self.group_id,
            "lastMessage": self.last_message.to_dict() if self.last_message else None,
            "unreadCount": self.unread_count,
            "isGroup": self.is_group,
            "isPinned": self.is_pinned,
            "isArchived": self.is_archived,
            "category": self.category.value if self.category else None,
            "customBackground": self.custom_background,
        }))
        return d

    @classmethod
    def from_dict(cls, d: dict) -> Conversation:
        return cls(
            id=d["id"],
            user_id=d.get("userId"),
            group_id=d.get("groupId"),
            last_message=Message.from_dict(d["lastMessage"]) if d.get("lastMessage") else None,
            unread_count=d.get("unreadCount", 0),
            is_group=d.get("isGroup", bool(d.get("groupId"))),
            is_pinned=d.get("isPinned", False),
            is_archived=d.get("isArchived", False),
            category=ConversationCategory(d["category"]) if d.get("category") else None,
            custom_background=d.get("customBackground"),
            extra=_extra(d, cls._FIELDS),
        )


@dataclass
class StarredMessage:
    message_id: str
    user_id: str
    chat_id: str
    created_at: int
    extra: dict = field(default_factory=dict)

    _FIELDS = {"messageId", "userId", "chatId", "createdAt"}

    def to_dict(self) -> dict:
        d = dict(self.extra)
        d.update({
            "messageId": self.message_id,
            "userId": self.user_id,
            "chatId": self.chat_id,
            "createdAt": self.created_at,
        })
        return d

    @classmethod
    def from_dict(cls, d: dict) -> StarredMessage:
        return cls(
            message_id=d["messageId"],
            user_id=d.get("userId", ""),
            chat_id=d.get("chatId", ""),
            created_at=d.get("createdAt", 0),
            extra=_extra(d, cls._FIELDS),
        )


@dataclass
class BlockedUser:
    id: str
    username: str
    display_name: str
    blocked_at: int
    extra: dict = field(default_factory=dict)

    _FIELDS = {"id", "username", "displayName", "blockedAt"}

    def to_dict(self) -> dict:
        d = dict(self.extra)
        d.update({
            "id": self.id,
            "username": self.username,
            "displayName": self.display_name,
            "blockedAt": self.blocked_at,
        })
        return d

    @classmethod
    def from_dict(cls, d: dict) -> BlockedUser:
        return cls(
            id=d["id"],
            username=d.get("username", ""),
            display_name=d.get("displayName", ""),
            blocked_at=d.get("blockedAt", 0),
            extra=_extra(d, cls._FIELDS),
        )


@dataclass
class AppSettings:
    theme: str = "auto"  # light | dark | auto
    font_size: str = "medium"  # small | medium | large
    notifications_enabled: bool = True
    extra: dict = field(default_factory=dict)

    _FIELDS = {"theme", "fontSize", "notificationsEnabled"}

    def to_dict(self) -> dict:
        d = dict(self.extra)
        d.update({
            "theme": self.theme,
            "fontSize": self.font_size,
            "notificationsEnabled": self.notifications_enabled,
        })
        return d

    @classmethod
    def from_dict(cls, d: dict) -> AppSettings:
        return cls(
            theme=d.get("theme", "auto"),
            font_size=d.get("fontSize", "medium"),
            notifications_enabled=d.get("notificationsEnabled", True),
            extra=_extra(d, cls._FIELDS),
        )
