"""Compiler version identifier parsing.

Recognizes stable releases (``3.3.1``), release candidates and milestones
(``3.4.0-RC2``, ``2.13.0-M5``) and unstable builds such as
``3.2.2-RC1-bin-20221009-2052fc2-NIGHTLY`` or
``3.3.0-bin-20230105-abcdef0-nonbootstrapped``.
"""

import re
from dataclasses import dataclass, replace
from typing import Optional

from constants import Constants

_VERSION_RE = re.compile(
    r'^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)'
    r'(?:-(?P<pre>RC|M)(?P<pre_num>\d+))?'
    r'(?:-bin-(?P<date>\d{8})-(?P<commit>[0-9A-Za-z]+)-(?P<marker>NIGHTLY|nonbootstrapped))?$'
)


@dataclass(frozen=True)
class CompilerVersion:
    """Structured view of a compiler version identifier."""
    major: int
    minor: int
    patch: int
    release_candidate: Optional[int] = None
    milestone: Optional[int] = None
    nightly_date: Optional[str] = None
    commit: Optional[str] = None
    marker: Optional[str] = None

    @property
    def is_unstable(self) -> bool:
        return self.marker is not None

    def without_nightly(self) -> "CompilerVersion":
        """Drop the nightly date, commit and marker, keeping any RC/milestone."""
        return replace(self, nightly_date=None, commit=None, marker=None)

    def __str__(self) -> str:
        out = f"{self.major}.{self.minor}.{self.patch}"
        if self.release_candidate is not None:
            out += f"-RC{self.release_candidate}"
        elif self.milestone is not None:
            out += f"-M{self.milestone}"
        if self.marker is not None:
            out += f"-bin-{self.nightly_date}-{self.commit}-{self.marker}"
        return out


def parse_version(raw: str) -> Optional[CompilerVersion]:
    """Parse a version identifier, returning None when it is malformed."""
    if not raw:
        return None
    m = _VERSION_RE.match(raw.strip())
    if not m:
        return None
    pre = m.group('pre')
    pre_num = int(m.group('pre_num')) if m.group('pre_num') else None
    return CompilerVersion(
        major=int(m.group('major')),
        minor=int(m.group('minor')),
        patch=int(m.group('patch')),
        release_candidate=pre_num if pre == 'RC' else None,
        milestone=pre_num if pre == 'M' else None,
        nightly_date=m.group('date'),
        commit=m.group('commit'),
        marker=m.group('marker'),
    )


def is_nightly_or_nonbootstrapped(raw: str) -> bool:
    """True for unstable build identifiers resolved through snapshot discovery.

    Uses the marker tokens rather than a full parse so unusual nightly
    layouts still qualify.
    """
    return Constants.NIGHTLY_MARKER in raw or Constants.NONBOOTSTRAPPED_MARKER in raw


def release_candidate_prefix(raw: str) -> Optional[str]:
    """Strip the nightly timestamp/commit suffix, e.g. ``3.2.2-RC1``."""
    parsed = parse_version(raw)
    if parsed is None:
        return None
    return str(parsed.without_nightly())
