"""Settings access helpers for JSON-based configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.errors import ParseError


class JsonSettings:
    """Lightweight JSON settings reader with dotted-key access."""

    def __init__(self, data: dict[str, Any] | None = None, path: Path | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self.path = path

    @classmethod
    def load(cls, settings_path: str | Path) -> JsonSettings:
        """Read settings from `settings_path`, which must exist."""
        path = Path(settings_path)
        if not path.exists():
            raise FileNotFoundError(f"settings file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as ex:
                raise ParseError(f"invalid settings JSON: {ex}", path) from ex
        if not isinstance(data, dict):
            raise ParseError("settings must be a JSON object", path)
        return cls(data, path)

    @classmethod
    def load_optional(cls, settings_path: str | Path) -> JsonSettings:
        """Like `load`, but an absent file yields empty settings."""
        path = Path(settings_path)
        if not path.exists():
            return cls()
        return cls.load(path)

    def get(self, key: str, default: Any | None = None) -> Any:
        """Return value for dotted `key`, or `default` if not present."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    def get_extensions(self, key: str, default: frozenset[str]) -> frozenset[str]:
        """Return a set of lower-case, dot-prefixed extensions."""
        value = self.get(key)
        if not isinstance(value, list) or not value:
            return default
        exts = {str(v).strip().lower() for v in value if str(v).strip()}
        return frozenset(e if e.startswith(".") else f".{e}" for e in exts)
