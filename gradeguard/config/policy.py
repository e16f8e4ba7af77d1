"""Grading policy values and the key-value stores they can be loaded from.

Core functions receive a GradingPolicy as an argument. Nothing under
gradeguard.extraction, gradeguard.grading or gradeguard.feedback reads the
environment or a settings file directly.
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from gradeguard.config.exceptions import PolicyStoreError
from gradeguard.config.settings import Settings


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class GradingPolicy:
    """Tunable constants shared by the readiness gate, scorer and selectors."""

    min_extracted_chars: int = 700
    min_extraction_confidence: float = 0.68
    min_page_count: int = 1
    max_warnings_before_block: int = 8
    auto_ready_min_quality_score: int = 72
    blocked_max_quality_score: int = 40
    modality_missing_cap: float = 0.65
    extraction_bonus_value: float = 0.04
    equation_fallback_enabled: bool = False
    equation_fallback_max_candidates: int = 4
    equation_fallback_min_confidence_to_skip: float = 0.86

    def clamped(self) -> GradingPolicy:
        """Return a copy with every value forced into its allowed range."""
        return replace(
            self,
            min_extracted_chars=max(200, int(self.min_extracted_chars)),
            min_extraction_confidence=_clamp(float(self.min_extraction_confidence), 0.4, 0.99),
            min_page_count=max(1, int(self.min_page_count)),
            max_warnings_before_block=max(2, int(self.max_warnings_before_block)),
            auto_ready_min_quality_score=int(
                _clamp(int(self.auto_ready_min_quality_score), 55, 95)
            ),
            blocked_max_quality_score=int(_clamp(int(self.blocked_max_quality_score), 10, 65)),
            modality_missing_cap=_clamp(float(self.modality_missing_cap), 0.2, 0.95),
            extraction_bonus_value=_clamp(float(self.extraction_bonus_value), 0.0, 0.1),
            equation_fallback_max_candidates=max(0, int(self.equation_fallback_max_candidates)),
            equation_fallback_min_confidence_to_skip=_clamp(
                float(self.equation_fallback_min_confidence_to_skip), 0.0, 1.0
            ),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> GradingPolicy:
        return cls(
            min_extracted_chars=settings.grading_min_extracted_chars,
            min_extraction_confidence=settings.grading_min_extraction_confidence,
            min_page_count=settings.grading_min_page_count,
            max_warnings_before_block=settings.grading_max_warnings_before_block,
            auto_ready_min_quality_score=settings.auto_ready_min_quality_score,
            blocked_max_quality_score=settings.blocked_max_quality_score,
            modality_missing_cap=settings.modality_missing_cap,
            extraction_bonus_value=settings.extraction_bonus_value,
            equation_fallback_enabled=settings.equation_fallback_enabled,
            equation_fallback_max_candidates=settings.equation_fallback_max_candidates,
            equation_fallback_min_confidence_to_skip=(
                settings.equation_fallback_min_confidence_to_skip
            ),
        ).clamped()

    @classmethod
    def from_store(cls, store: PolicyStore, base: GradingPolicy | None = None) -> GradingPolicy:
        """Overlay values found in *store* on top of *base* (or the defaults).

        Values of the wrong type are ignored and the base value is kept.
        """
        base = base or cls()
        overrides: dict[str, Any] = {}
        for f in fields(cls):
            default = getattr(base, f.name)
            value = store.get(f.name, default)
            coerced = _coerce(value, default)
            if coerced is not None:
                overrides[f.name] = coerced
        return replace(base, **overrides).clamped()

    def to_store(self, store: PolicyStore) -> None:
        for f in fields(self):
            store.set(f.name, getattr(self, f.name))


def _coerce(value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        return value if isinstance(value, bool) else None
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return int(value)
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)
    return value


class PolicyStore(ABC):
    """Contract for key-value policy storage."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for *key*, or *default* when absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*.

        Raises:
            PolicyStoreError: if the value cannot be persisted.
        """

    @abstractmethod
    def items(self) -> dict[str, Any]:
        """Return a snapshot of all stored values."""


class InMemoryPolicyStore(PolicyStore):
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def items(self) -> dict[str, Any]:
        return dict(self._values)


class JsonFilePolicyStore(PolicyStore):
    """Policy values persisted as a single JSON object on disk.

    The file is read on every access so concurrent editors see each other's
    writes; writes go through a temporary file and an atomic rename.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def items(self) -> dict[str, Any]:
        return self._read()

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise PolicyStoreError(f"Failed to read policy file {self._path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise PolicyStoreError(f"Policy file {self._path} must contain a JSON object")
        return raw

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=True)
                os.replace(tmp_name, self._path)
            finally:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
        except (OSError, TypeError) as exc:
            raise PolicyStoreError(f"Failed to write policy file {self._path}: {exc}") from exc


def load_policy(settings: Settings, store: PolicyStore | None = None) -> GradingPolicy:
    """Settings provide the defaults; a configured store overrides them."""
    base = GradingPolicy.from_settings(settings)
    if store is None and settings.policy_file:
        store = JsonFilePolicyStore(Path(settings.policy_file))
    if store is None:
        return base
    return GradingPolicy.from_store(store, base)
