"""Data models for compiler version resolution."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Tuple, Union


@dataclass(frozen=True)
class Artifacts:
    """Resolved artifact set for one compiler version."""
    version: str
    locations: Tuple[str, ...] = field(default_factory=tuple)
    builtin: bool = False

    @classmethod
    def builtin_for(cls, version: str) -> "Artifacts":
        """Artifacts for a version already satisfied by the running process."""
        return cls(version=version, locations=(), builtin=True)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for JSON export."""
        return {
            "version": self.version,
            "builtin": self.builtin,
            "locations": list(self.locations),
        }


@dataclass(frozen=True)
class Success:
    """Terminal state: artifacts were fetched."""
    artifacts: Artifacts


@dataclass(frozen=True)
class Failure:
    """Non-terminal state: the last fetch attempts failed.

    ``tries`` counts consecutive attempts, starting at 1 for the first failure.
    ``reported`` is set once the stale failure has been logged for the
    current cooldown window.
    """
    last_try_millis: int
    tries: int
    reported: bool = False

    def mark_reported(self) -> "Failure":
        return replace(self, reported=True)


ResolutionState = Union[Success, Failure]
