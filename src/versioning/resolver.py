"""Resolution of mtags artifacts for a requested compiler version.

The resolver answers with artifacts from, in order: the built-in set, the
cached or freshly fetched artifacts (fetched through the removed-version
alias when the version is no longer supported), and for nightly builds the
latest compatible nightly snapshot. Failures never escape :meth:`resolve`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from registry.errors import ResolutionError
from registry.mtags import ArtifactFetcher, MavenArtifactFetcher
from registry.snapshots import RemoteIndexScanner, SnapshotIndexScanner

from .aliases import VersionAliases
from .cache import VersionCache
from .models import Artifacts, Failure, ResolutionState, Success
from .nightly import find_latest_snapshot
from .parser import is_nightly_or_nonbootstrapped
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


def builtin_versions(versions: Iterable[str]) -> Callable[[str], bool]:
    """Predicate matching a fixed set of built-in versions."""
    known = frozenset(versions)
    return lambda version: version in known


class MtagsResolver(ABC):
    """Resolve the mtags module for a given compiler version."""

    @abstractmethod
    def resolve(self, version: str) -> Optional[Artifacts]:
        """Artifacts to load for ``version``, or None when unsupported."""

    def is_supported(self, version: str) -> bool:
        """Check if a given compiler version is supported."""
        return self.resolve(version) is not None

    @abstractmethod
    def is_supported_in_older_version(self, version: str) -> bool:
        """Check if ``version`` was supported by an older runtime version."""


class DefaultMtagsResolver(MtagsResolver):
    """Resolver backed by a fetcher, a snapshot scanner and a version cache."""

    def __init__(
        self,
        fetcher: ArtifactFetcher,
        scanner: RemoteIndexScanner,
        runtime_version: Optional[str] = None,
        is_builtin: Optional[Callable[[str], bool]] = None,
        aliases: Optional[VersionAliases] = None,
        cache: Optional[VersionCache] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self._fetcher = fetcher
        self._scanner = scanner
        self.runtime_version = runtime_version or Constants.RUNTIME_VERSION
        self._is_builtin = is_builtin or builtin_versions(Constants.BUILTIN_SCALA_VERSIONS)
        self._aliases = aliases if aliases is not None else VersionAliases()
        self._cache = cache if cache is not None else VersionCache()
        self._retry = retry_policy or RetryPolicy()

    def is_supported_in_older_version(self, version: str) -> bool:
        return version in self._aliases

    def states(self) -> List[Tuple[str, ResolutionState]]:
        """Snapshot of the cached resolution states."""
        return self._cache.items()

    def resolve(self, version: str) -> Optional[Artifacts]:
        try:
            artifacts, attempted = self._resolve_once(version)
            if artifacts is not None or not attempted:
                return artifacts
            if not is_nightly_or_nonbootstrapped(version):
                return None
            latest = find_latest_snapshot(version, self._scanner, self.runtime_version)
            if latest is None:
                return None
            logger.warning("Using latest compatible nightly %s for %s", latest, version)
            artifacts, _ = self._resolve_once(latest, original=version, force=True)
            return artifacts
        except Exception:  # pylint: disable=broad-exception-caught
            logger.error("Unexpected error while resolving mtags for %s", version, exc_info=True)
            return None

    def _resolve_once(
        self,
        version: str,
        original: Optional[str] = None,
        force: bool = False,
    ) -> Tuple[Optional[Artifacts], bool]:
        """Single cache-backed attempt.

        The state is stored under ``original`` when given, so a nightly served
        by another snapshot stays attached to the requested identifier. With
        ``force`` a recorded failure is fetched again regardless of the retry
        policy. Returns (artifacts or None, whether a fetch was made).
        """
        if self._is_builtin(version):
            return Artifacts.builtin_for(version), False

        attempted = False

        def fetch(tries: int) -> ResolutionState:
            nonlocal attempted
            attempted = True
            return self._fetch(version, tries)

        def step(current: Optional[ResolutionState]) -> ResolutionState:
            if current is None:
                return fetch(1)
            if isinstance(current, Success):
                return current
            if force or self._retry.should_resolve_again(current):
                return fetch(current.tries + 1)
            if not current.reported:
                logger.info("No mtags for %s.", version)
                return current.mark_reported()
            return current

        state = self._cache.compute(original or version, step)
        if is_debug_enabled(logger):
            logger.debug("Resolution step finished", extra=extra_context(
                event="decision", component="resolver", action="resolve_once",
                outcome=type(state).__name__.lower(), target=version,
                original=original, attempted=attempted
            ))
        if isinstance(state, Success):
            return state.artifacts, attempted
        return None, attempted

    def _fetch(self, version: str, tries: int) -> ResolutionState:
        fetch_runtime = self._aliases.fetch_runtime_version(version, self.runtime_version)
        if fetch_runtime != self.runtime_version:
            logger.warning(
                "%s is no longer supported in the current runtime version, "
                "using the last known supported version %s",
                version,
                fetch_runtime,
            )
        try:
            return Success(self._fetcher.fetch(version, fetch_runtime))
        except ResolutionError as e:
            # The message already explains what is missing
            logger.error("Failed to fetch mtags for %s\n%s", version, e)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.error("Failed to fetch mtags for %s", version, exc_info=True)
        return Failure(last_try_millis=self._retry.now_millis(), tries=tries)


def create_default_resolver(
    runtime_version: Optional[str] = None,
    repositories: Optional[Sequence[str]] = None,
    cache_dir: Optional[str] = None,
    snapshot_index_url: Optional[str] = None,
) -> DefaultMtagsResolver:
    """Resolver wired to Maven repositories and the snapshot index from Constants."""
    return DefaultMtagsResolver(
        fetcher=MavenArtifactFetcher(repositories=repositories, cache_dir=cache_dir),
        scanner=SnapshotIndexScanner(snapshot_index_url),
        runtime_version=runtime_version,
        is_builtin=builtin_versions(Constants.BUILTIN_SCALA_VERSIONS),
        aliases=VersionAliases(Constants.REMOVED_VERSIONS),
    )
