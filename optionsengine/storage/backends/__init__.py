"""Storage backend implementations for option records."""

from .base import StorageBackend
from .blog import BlogOptionStorage
from .network import NetworkOptionStorage
from .site import SiteOptionStorage
from .user import UserMetaStorage, UserOptionStorage

__all__ = [
    "StorageBackend",
    "SiteOptionStorage",
    "NetworkOptionStorage",
    "BlogOptionStorage",
    "UserMetaStorage",
    "UserOptionStorage",
]
