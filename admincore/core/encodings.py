"""Declarative table of candidate encodings for known backend validation quirks."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

from admincore.core.settings import DEFAULT_CANDIDATES_FILE


class CandidateTable:
    """Maps ``field -> problematic value -> ordered alternate encodings``."""

    def __init__(self, entries: Mapping[str, Mapping[Any, Any]] | None = None) -> None:
        self._entries: dict[str, dict[Any, tuple[Any, ...]]] = {}
        for field, values in (entries or {}).items():
            if not isinstance(values, Mapping):
                raise ValueError(f"candidate entry for {field!r} must be a mapping")
            normalised: dict[Any, tuple[Any, ...]] = {}
            for value, candidates in values.items():
                if isinstance(candidates, (str, bytes)) or not isinstance(candidates, (list, tuple)):
                    raise ValueError(f"candidates for {field}={value!r} must be a list")
                # The original value is always the first attempt.
                ordered = tuple(dict.fromkeys(item for item in candidates if item != value))
                normalised[value] = ordered
            self._entries[str(field)] = normalised

    @classmethod
    def load(cls, path: Path | None = None) -> "CandidateTable":
        path = path or DEFAULT_CANDIDATES_FILE
        if not path.exists():
            return cls()
        with path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
        if not isinstance(data, Mapping):
            raise ValueError(f"{path} must contain a mapping of fields")
        return cls(data)

    def candidates_for(self, field: str, value: Any) -> tuple[Any, ...]:
        return self._entries.get(field, {}).get(value, ())

    def as_dict(self) -> dict[str, dict[Any, list[Any]]]:
        return {field: {value: list(items) for value, items in values.items()} for field, values in self._entries.items()}

    def __bool__(self) -> bool:
        return any(self._entries.values())


__all__ = ["CandidateTable"]
