"""Runtime configuration for the workflow validator."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from workflow_validator.knowledge.store import DEFAULT_SNAPSHOT
from workflow_validator.properties.models import VALIDATION_PROFILES


@dataclass(frozen=True)
class Settings:
    """Immutable settings loaded from environment variables."""

    nodes_snapshot: Path = DEFAULT_SNAPSHOT
    profile: str = "runtime"
    cache_ttl: float = 300.0
    max_fixes: int = 50
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.profile not in VALIDATION_PROFILES:
            raise ValueError(
                f"Unknown validation profile {self.profile!r}; expected one of {sorted(VALIDATION_PROFILES)}"
            )

    @classmethod
    def from_env(cls) -> Settings:
        snapshot = os.getenv("WORKFLOW_VALIDATOR_NODES_SNAPSHOT")
        return cls(
            nodes_snapshot=Path(snapshot) if snapshot else DEFAULT_SNAPSHOT,
            profile=os.getenv("WORKFLOW_VALIDATOR_PROFILE", "runtime"),
            cache_ttl=float(os.getenv("WORKFLOW_VALIDATOR_CACHE_TTL", "300")),
            max_fixes=int(os.getenv("WORKFLOW_VALIDATOR_MAX_FIXES", "50")),
            log_level=os.getenv("WORKFLOW_VALIDATOR_LOG_LEVEL", "WARNING").upper(),
        )
