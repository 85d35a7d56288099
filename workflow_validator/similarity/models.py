"""Scored correction candidates returned by the suggestion services."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

AUTO_FIX_CONFIDENCE = 0.9


@dataclass
class Suggestion:
    """A candidate replacement value with a confidence in [0, 1]."""

    value: str
    confidence: float
    reason: str

    @property
    def auto_fixable(self) -> bool:
        return self.confidence >= AUTO_FIX_CONFIDENCE

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v not in (None, [], "")}


@dataclass
class NodeSuggestion(Suggestion):
    display_name: str = ""
    category: str | None = None
    description: str | None = None


@dataclass
class ResourceSuggestion(Suggestion):
    available_operations: list[str] = field(default_factory=list)


@dataclass
class OperationSuggestion(Suggestion):
    resource: str | None = None
    description: str | None = None
