"""
Scoped read access to a source image.

Sandboxed front ends may have to negotiate access to a file before reading it
and give it back afterwards. ``scoped_access`` pairs the two calls so release
runs exactly once on every exit path.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Protocol, Union

__all__ = ["ScopedResource", "LocalFileResource", "as_resource", "scoped_access"]

logger = logging.getLogger(__name__)


class ScopedResource(Protocol):
    path: Path

    def start_access(self) -> bool:
        """Return True when a matching ``stop_access`` call is required."""
        ...

    def stop_access(self) -> None:
        ...


class LocalFileResource:
    """
    Plain filesystem path. Nothing to negotiate, so nothing to release.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def start_access(self) -> bool:
        if self.path.exists() and not os.access(self.path, os.R_OK):
            logger.warning("No read permission for %s", self.path)
        return False

    def stop_access(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"LocalFileResource({str(self.path)!r})"


def as_resource(source: Union[str, Path, ScopedResource]) -> ScopedResource:
    if isinstance(source, (str, Path)):
        return LocalFileResource(source)
    return source


@contextmanager
def scoped_access(resource: ScopedResource) -> Iterator[Path]:
    granted = resource.start_access()
    logger.debug("Acquired access to %s (release required: %s)", resource.path, granted)
    try:
        yield resource.path
    finally:
        if granted:
            resource.stop_access()
            logger.debug("Released access to %s", resource.path)
