"""Deprecated-version alias table.

Maps compiler versions that the current runtime no longer supports to the
last runtime version that shipped artifacts for them.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Dict, Iterator, Optional

from constants import Constants


class VersionAliases(Mapping):
    """Read-only view over the removed-version table."""

    def __init__(self, removed: Optional[Mapping[str, str]] = None):
        table: Dict[str, str] = dict(Constants.REMOVED_VERSIONS if removed is None else removed)
        self._table = MappingProxyType(table)

    def __getitem__(self, version: str) -> str:
        return self._table[version]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def alias_for(self, version: str) -> Optional[str]:
        """Runtime version still serving ``version``, or None if not removed."""
        return self._table.get(version)

    def fetch_runtime_version(self, version: str, runtime_version: str) -> str:
        """Runtime version whose artifacts should be fetched for ``version``."""
        return self._table.get(version, runtime_version)
