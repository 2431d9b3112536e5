"""Storage layer: host primitives, scope backends and their factory."""

from .backends import (
    BlogOptionStorage,
    NetworkOptionStorage,
    SiteOptionStorage,
    StorageBackend,
    UserMetaStorage,
    UserOptionStorage,
)
from .config import StorageConfig
from .host import HostPlatform, InMemoryHost, JsonFileHost
from .registry import StorageBackendFactory

__all__ = [
    "HostPlatform",
    "InMemoryHost",
    "JsonFileHost",
    "StorageBackend",
    "SiteOptionStorage",
    "NetworkOptionStorage",
    "BlogOptionStorage",
    "UserMetaStorage",
    "UserOptionStorage",
    "StorageBackendFactory",
    "StorageConfig",
]
