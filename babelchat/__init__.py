"""
BabelChat: local-first multilingual chat core.

Every outbound message is rendered once per recipient language, appended to
the chat's message log and folded into the sender's conversation summary,
all over a plain key/value store of JSON documents.

Core pieces:
1. Translation stub (phrasebook lookup + script-based language detection)
2. Local document store with a small intent journal for multi-key writes
3. Conversation manager keeping message logs and conversation rows consistent

License: MIT
"""

__version__ = "0.1.0"

from babelchat.models import ChatTarget, Conversation, Group, Message, User
from babelchat.manager import ConversationManager
from babelchat.results import Result

__all__ = [
    "ChatTarget",
    "Conversation",
    "ConversationManager",
    "Group",
    "Message",
    "Result",
    "User",
]
