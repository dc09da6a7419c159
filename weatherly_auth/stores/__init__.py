from .credentials import CredentialStore
from .kv import FileStore, KeyValueStore, MemoryStore
from .sessions import SessionStore

__all__ = ["CredentialStore", "FileStore", "KeyValueStore", "MemoryStore", "SessionStore"]
