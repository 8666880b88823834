"""
elbtal_backup - Object Store package.

Provides:

    - ObjectStoreConfig: backend configuration
    - ObjectStore: protocol describing required interface
    - ObjectNotFoundError: raised by download() for missing objects
    - LocalFSObjectStore: local filesystem implementation
    - SupabaseStorageObjectStore: Supabase Storage over HTTP
"""

from .base import ObjectStoreConfig, ObjectStore, ObjectNotFoundError
from .local_fs import LocalFSObjectStore
from .supabase_storage import SupabaseStorageObjectStore

__all__ = [
    "ObjectStore",
    "ObjectStoreConfig",
    "ObjectNotFoundError",
    "LocalFSObjectStore",
    "SupabaseStorageObjectStore",
]
