"""Shared fixtures for optionsengine tests."""

import logging
from collections.abc import Callable, Generator
from typing import Any, Optional

import pytest
import structlog

from optionsengine.core.config import reset_engine_config
from optionsengine.core.rules import is_positive_int
from optionsengine.core.scope import OptionScope
from optionsengine.observability.config import reset_config
from optionsengine.storage.backends.base import StorageBackend
from optionsengine.storage.host import InMemoryHost, blog_table


class CountingBackend(StorageBackend):
    """Site-scope backend that records every call and can be told to refuse writes."""

    def __init__(self, host: InMemoryHost, fail_writes: bool = False, autoload: bool = True):
        self.calls: list[tuple[str, str]] = []
        self.fail_writes = fail_writes
        self._autoload = autoload
        super().__init__(host)

    @property
    def backend_type(self) -> str:
        return "counting"

    def scope(self) -> OptionScope:
        return OptionScope.SITE

    def _table(self) -> str:
        return blog_table(self.host.current_blog_id())

    def supports_autoload(self) -> bool:
        return self._autoload

    def read(self, key: str) -> Any:
        self.calls.append(("read", key))
        return super().read(key)

    def exists(self, key: str) -> bool:
        self.calls.append(("exists", key))
        return super().exists(key)

    def update(self, key: str, value: Any, autoload: bool = False) -> bool:
        self.calls.append(("update", key))
        return False if self.fail_writes else super().update(key, value, autoload)

    def add(self, key: str, value: Any, autoload: Optional[bool] = None) -> bool:
        self.calls.append(("add", key))
        return False if self.fail_writes else super().add(key, value, autoload)

    def delete(self, key: str) -> bool:
        self.calls.append(("delete", key))
        return False if self.fail_writes else super().delete(key)

    def count(self, *operations: str) -> int:
        return sum(1 for op, _ in self.calls if op in operations)

    def writes(self) -> int:
        return self.count("update", "add", "delete")


@pytest.fixture
def host() -> InMemoryHost:
    """In-memory host with an acting admin user on blog 1."""
    host = InMemoryHost(current_blog_id=1, current_user_id=1)
    host.grant(1, "manage_options", "manage_network_options", "edit_users")
    return host


@pytest.fixture
def backend(host: InMemoryHost) -> CountingBackend:
    return CountingBackend(host)


@pytest.fixture
def make_backend(host: InMemoryHost) -> Callable[..., CountingBackend]:
    """Factory for extra backends sharing the same host."""
    return lambda **kwargs: CountingBackend(host, **kwargs)


@pytest.fixture
def failing_backend(host: InMemoryHost) -> CountingBackend:
    return CountingBackend(host, fail_writes=True)


@pytest.fixture
def retries_schema() -> dict[str, Any]:
    return {"retries": {"default": 3, "validate": [is_positive_int]}}


@pytest.fixture(autouse=True)
def isolate_test_state() -> Generator[None, None, None]:
    """Reset module-level configuration and root logging between tests."""
    reset_engine_config()
    reset_config()
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level

    yield

    reset_engine_config()
    reset_config()
    structlog.reset_defaults()
    for handler in logging.getLogger().handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
