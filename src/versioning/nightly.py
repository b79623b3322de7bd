"""Nightly snapshot discovery.

A nightly presentation compiler works with classfiles produced by any nightly
of the same release candidate: ``3.2.2-RC1-bin-20221009-2052fc2-NIGHTLY`` can
be served by the artifacts built for ``3.2.2-RC1-bin-20220910-ac6cd1c-NIGHTLY``.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from registry.snapshots import RemoteIndexScanner

from .parser import parse_version, release_candidate_prefix

logger = logging.getLogger(__name__)


def _entry_version(name: str) -> str:
    version = name.strip()
    if version.endswith("/"):
        version = version[:-1]
    if version.startswith(Constants.MTAGS_ARTIFACT_PREFIX):
        version = version[len(Constants.MTAGS_ARTIFACT_PREFIX):]
    return version


def nightly_candidates(entries: List[str], rc_prefix: str) -> List[Tuple[str, str]]:
    """Keep the well-formed nightly entries of ``rc_prefix``, in index order.

    Returns (entry name, version) pairs.
    """
    candidates = []
    for name in entries:
        if Constants.NIGHTLY_MARKER not in name or rc_prefix not in name:
            continue
        version = _entry_version(name)
        parsed = parse_version(version)
        if parsed is None or not parsed.is_unstable:
            if is_debug_enabled(logger):
                logger.debug("Ignoring malformed snapshot entry", extra=extra_context(
                    event="decision", component="nightly", action="filter_candidates",
                    outcome="malformed", target=name
                ))
            continue
        if str(parsed.without_nightly()) != rc_prefix:
            continue
        candidates.append((name, version))
    return candidates


def find_latest_snapshot(
    exact_version: str,
    scanner: RemoteIndexScanner,
    runtime_version: str,
) -> Optional[str]:
    """Latest nightly of the same release candidate supported by ``runtime_version``.

    Remote failures are logged and reported as no match.
    """
    rc_prefix = release_candidate_prefix(exact_version)
    if rc_prefix is None:
        logger.warning("Cannot derive release candidate from %s", exact_version)
        return None
    try:
        candidates = nightly_candidates(scanner.list_entries(rc_prefix), rc_prefix)
        marker = f"{runtime_version}/"
        for name, version in reversed(candidates):
            if scanner.entry_contains(name, marker):
                return version
    except Exception:  # pylint: disable=broad-exception-caught
        logger.error("Could not check latest nightlies", exc_info=True)
        return None

    logger.info("No nightly of %s supported by %s", rc_prefix, runtime_version)
    return None
