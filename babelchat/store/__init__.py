"""Local document store: interface, in-memory and file-backed implementations."""

from babelchat.store.base import DocumentStore
from babelchat.store.file import JsonFileStore
from babelchat.store.memory import MemoryStore

__all__ = ["DocumentStore", "JsonFileStore", "MemoryStore"]
