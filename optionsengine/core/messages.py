"""Per-key warnings and notices collected while sanitizing and validating."""

from typing import Iterable

WARNING = "warning"
NOTICE = "notice"


class MessageBuffer:
    """Accumulates ``{key: {"warnings": [...], "notices": [...]}}``."""

    def __init__(self) -> None:
        self._messages: dict[str, dict[str, list[str]]] = {}

    def add(self, key: str, message: str, kind: str = WARNING) -> None:
        if kind not in (WARNING, NOTICE):
            raise ValueError(f"Unknown message kind '{kind}'")
        bucket = self._messages.setdefault(key, {"warnings": [], "notices": []})
        bucket["warnings" if kind == WARNING else "notices"].append(message)

    def remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._messages.pop(key, None)

    def has_warnings(self) -> bool:
        return any(bucket["warnings"] for bucket in self._messages.values())

    def warning_count(self) -> int:
        return sum(len(bucket["warnings"]) for bucket in self._messages.values())

    def all(self) -> dict[str, dict[str, list[str]]]:
        return {
            key: {"warnings": list(bucket["warnings"]), "notices": list(bucket["notices"])}
            for key, bucket in self._messages.items()
        }

    def take(self) -> dict[str, dict[str, list[str]]]:
        messages = self.all()
        self.clear()
        return messages

    def take_warnings(self) -> dict[str, list[str]]:
        warnings = {key: b["warnings"] for key, b in self.all().items() if b["warnings"]}
        self.clear()
        return warnings

    def take_notices(self) -> dict[str, list[str]]:
        notices = {key: b["notices"] for key, b in self.all().items() if b["notices"]}
        self.clear()
        return notices

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
