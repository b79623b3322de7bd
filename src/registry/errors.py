"""Error kinds raised by the registry collaborators."""

from __future__ import annotations


class ResolutionError(Exception):
    """An artifact could not be resolved.

    The message is complete and human readable, so callers log it without
    a traceback.
    """


class IndexScanError(IOError):
    """A remote snapshot index could not be read or parsed."""
