"""
Storage key conventions.

The keyspace matches the one existing on-device data uses, so a store written
by the original client can be opened directly:

    users, groups, user, auth_token, app_settings
    messages_<chatId>, conversations_<userId>, reactions_<chatId>,
    starred_<userId>, blocked_<userId>

``intents_<userId>`` is new: it holds the journal of in-flight multi-key
writes (see ``babelchat.journal``).
"""

USERS = "users"
GROUPS = "groups"
SESSION_USER = "user"
AUTH_TOKEN = "auth_token"
APP_SETTINGS = "app_settings"


def messages_key(chat_id: str) -> str:
    return f"messages_{chat_id}"


def conversations_key(user_id: str) -> str:
    return f"conversations_{user_id}"


def reactions_key(chat_id: str) -> str:
    return f"reactions_{chat_id}"


def starred_key(user_id: str) -> str:
    return f"starred_{user_id}"


def blocked_key(user_id: str) -> str:
    return f"blocked_{user_id}"


def intents_key(user_id: str) -> str:
    return f"intents_{user_id}"
