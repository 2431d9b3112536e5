"""
Host platform primitives consumed by the storage backends.

The engine never talks to a database directly. Each backend maps its scope
onto a named table of the injected host and calls four raw primitives
(read/add/update/delete) plus a few questions about the current request
(which blog is current, which user is acting, what may they do).
"""

import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)

NETWORK_TABLE = "network"


def blog_table(blog_id: int) -> str:
    return f"blog:{blog_id}"


def usermeta_table(user_id: int) -> str:
    return f"usermeta:{user_id}"


def useroption_table(user_id: int, global_: bool = False) -> str:
    return f"useroption:global:{user_id}" if global_ else f"useroption:{user_id}"


class HostPlatform(ABC):
    """Abstract raw read/write primitives for every storage scope."""

    @abstractmethod
    def read(self, table: str, key: str) -> Any:
        """Return the stored value or None when the record is missing."""

    @abstractmethod
    def exists(self, table: str, key: str) -> bool:
        """Check whether a record exists, even if it stores a falsy value."""

    @abstractmethod
    def add(self, table: str, key: str, value: Any, autoload: Optional[bool] = None) -> bool:
        """Create a record; returns False if it already exists."""

    @abstractmethod
    def update(self, table: str, key: str, value: Any, autoload: Optional[bool] = None) -> bool:
        """Store a record, creating it when missing; True when stored."""

    @abstractmethod
    def delete(self, table: str, key: str) -> bool:
        """Delete a record; returns False if it didn't exist."""

    @abstractmethod
    def current_blog_id(self) -> int:
        """Blog (sub-site) the current request runs under."""

    @abstractmethod
    def current_user_id(self) -> int:
        """Acting user id, 0 when anonymous."""

    @abstractmethod
    def current_user_can(self, capability: str, *args: Any) -> bool:
        """Capability check for the acting user."""


class InMemoryHost(HostPlatform):
    """
    Dict-backed host used by tests, examples and the CLI.

    Records keep an autoload flag alongside their value. Capabilities are
    granted per user; ``edit_user`` on the acting user's own id is implied.

    Examples:
        >>> host = InMemoryHost(current_blog_id=1)
        >>> host.set_current_user(7)
        >>> host.grant(7, "manage_options")
        >>> host.current_user_can("manage_options")
        True
    """

    def __init__(self, current_blog_id: int = 1, current_user_id: int = 0):
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._current_blog_id = current_blog_id
        self._current_user_id = current_user_id
        self._capabilities: dict[int, set[str]] = {}

    def _table(self, table: str) -> dict[str, dict[str, Any]]:
        return self._tables.setdefault(table, {})

    def read(self, table: str, key: str) -> Any:
        record = self._tables.get(table, {}).get(key)
        if record is None:
            return None
        return copy.deepcopy(record["value"])

    def exists(self, table: str, key: str) -> bool:
        return key in self._tables.get(table, {})

    def add(self, table: str, key: str, value: Any, autoload: Optional[bool] = None) -> bool:
        records = self._table(table)
        if key in records:
            logger.debug(f"Host add refused, '{key}' already exists in {table}")
            return False
        records[key] = {"value": copy.deepcopy(value), "autoload": autoload}
        return self._persist(table, key, None)

    def update(self, table: str, key: str, value: Any, autoload: Optional[bool] = None) -> bool:
        records = self._table(table)
        existing = records.get(key)
        previous = copy.deepcopy(existing)
        if existing is None:
            records[key] = {"value": copy.deepcopy(value), "autoload": autoload}
        else:
            existing["value"] = copy.deepcopy(value)
            if autoload is not None:
                existing["autoload"] = autoload
        return self._persist(table, key, previous)

    def delete(self, table: str, key: str) -> bool:
        records = self._tables.get(table, {})
        if key not in records:
            return False
        previous = records.pop(key)
        return self._persist(table, key, previous)

    def autoload_flag(self, table: str, key: str) -> Optional[bool]:
        """Autoload hint recorded for a record, None if unknown or missing."""
        record = self._tables.get(table, {}).get(key)
        return None if record is None else record["autoload"]

    def tables(self) -> list[str]:
        return sorted(self._tables)

    def current_blog_id(self) -> int:
        return self._current_blog_id

    def switch_blog(self, blog_id: int) -> None:
        self._current_blog_id = blog_id

    def current_user_id(self) -> int:
        return self._current_user_id

    def set_current_user(self, user_id: int) -> None:
        self._current_user_id = user_id

    def grant(self, user_id: int, *capabilities: str) -> None:
        self._capabilities.setdefault(user_id, set()).update(capabilities)

    def current_user_can(self, capability: str, *args: Any) -> bool:
        user_id = self._current_user_id
        if user_id <= 0:
            return False
        if capability == "edit_user" and args and args[0] == user_id:
            return True
        granted = self._capabilities.get(user_id, set())
        if capability == "edit_user":
            return "edit_users" in granted or "edit_user" in granted
        return capability in granted

    def _changed(self) -> None:
        """Hook for subclasses that persist the tables."""

    def _persist(self, table: str, key: str, previous: Optional[dict[str, Any]]) -> bool:
        """
        Run the persistence hook after a mutation, undoing it on failure.

        An unwritable store is a refused write (False). Values the store can't
        represent raise StorageError after the rollback.
        """
        try:
            self._changed()
        except (OSError, StorageError) as e:
            records = self._table(table)
            if previous is None:
                records.pop(key, None)
            else:
                records[key] = previous
            if isinstance(e, StorageError):
                raise
            logger.warning(f"Host write for '{key}' in {table} failed and was rolled back: {e}")
            return False
        return True

    def _snapshot(self) -> dict[str, Any]:
        return {
            "current_blog_id": self._current_blog_id,
            "current_user_id": self._current_user_id,
            "capabilities": {str(k): sorted(v) for k, v in self._capabilities.items()},
            "tables": self._tables,
        }

    def _restore(self, data: dict[str, Any]) -> None:
        self._current_blog_id = int(data.get("current_blog_id", self._current_blog_id))
        self._current_user_id = int(data.get("current_user_id", self._current_user_id))
        self._capabilities = {
            int(k): set(v) for k, v in data.get("capabilities", {}).items()
        }
        self._tables = data.get("tables", {})


class JsonFileHost(InMemoryHost):
    """
    InMemoryHost persisted to a single JSON file.

    Every mutation rewrites the file atomically via a temporary file in the
    same directory.
    """

    def __init__(
        self,
        path: Union[str, Path],
        current_blog_id: int = 1,
        current_user_id: int = 0,
    ):
        super().__init__(current_blog_id=current_blog_id, current_user_id=current_user_id)
        self.path = Path(path).resolve()
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(
                f"Failed to read options store {self.path}: {e}",
                backend_type="json_file",
            ) from e
        if not isinstance(data, dict):
            raise StorageError(
                f"Options store {self.path} must contain a JSON object",
                backend_type="json_file",
            )
        self._restore(data)
        logger.debug(f"Loaded options store from {self.path}")

    def _changed(self) -> None:
        self.save()

    def save(self) -> None:
        """
        Write all tables to disk atomically.

        Raises:
            StorageError: If a stored value has no JSON representation
            OSError: If the file can't be written
        """
        try:
            text = json.dumps(self._snapshot(), indent=2, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise StorageError(
                f"Options store {self.path} can't hold a value: {e}",
                backend_type="json_file",
            ) from e

        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(temp_path, self.path)
        except Exception:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
