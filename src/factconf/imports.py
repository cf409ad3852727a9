"""
Import resolution and the stack of files being evaluated.

Resolution rules for `import "<path>";`:
- an absolute path is tried as-is, with no fallback;
- a relative path is tried relative to the directory of the importing
  file (the opener's working directory when evaluating a string or
  stream), then as written;
- if nothing opens, the error names every path that was tried.

A file that is already on the stack cannot be imported again until its
evaluation finishes; the error shows the whole chain.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from .streams import StreamOpener
from .tokens import SourceSpan
from .errors import error_import_not_found, error_import_cycle, error_import_too_deep

logger = logging.getLogger(__name__)


DEFAULT_MAX_IMPORT_DEPTH = 32


@dataclass(frozen=True)
class ImportFrame:
    """A file currently being evaluated."""
    canonical: str      # identity used for cycle detection
    name: str           # path as it was opened, used in messages


class ImportStack:
    """Files mid-evaluation, innermost last."""

    def __init__(self, opener: StreamOpener, max_depth: int = DEFAULT_MAX_IMPORT_DEPTH):
        self.opener = opener
        self.max_depth = max_depth
        self.frames: List[ImportFrame] = []

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def current(self) -> Optional[ImportFrame]:
        return self.frames[-1] if self.frames else None

    def current_filename(self) -> str:
        """Name of the file being evaluated, or "" for strings and streams."""
        return self.frames[-1].name if self.frames else ""

    def chain(self) -> List[str]:
        return [frame.name for frame in self.frames]

    def current_directory(self) -> str:
        if self.frames:
            return self.opener.dirname(self.frames[-1].name)
        return self.opener.cwd()

    def candidates(self, path: str) -> List[str]:
        """Paths to try for an import, in order."""
        if self.opener.is_absolute(path):
            return [path]
        relative = self.opener.join(self.current_directory(), path)
        if relative == path:
            return [path]
        return [relative, path]

    def _can_open(self, name: str) -> bool:
        try:
            with self.opener.open(name):
                return True
        except OSError:
            return False

    def resolve(self, path: str, span: Optional[SourceSpan] = None,
                source_line: Optional[str] = None) -> str:
        """
        The first candidate for `path` that can be opened.

        Raises:
            ImportNotFoundError: if no candidate can be opened
        """
        attempted = self.candidates(path)
        for candidate in attempted:
            if self._can_open(candidate):
                logger.debug("resolved import %r to %r", path, candidate)
                return candidate
        raise error_import_not_found(path, attempted, span, source_line)

    def check(self, name: str, span: Optional[SourceSpan] = None,
              source_line: Optional[str] = None) -> str:
        """
        Canonicalize `name` and make sure it may be pushed.

        Raises:
            ImportCycleError: if the file is already being evaluated
            ImportDepthError: if the stack is full
        """
        canonical = self.opener.canonical(name)
        for i, frame in enumerate(self.frames):
            if frame.canonical == canonical:
                chain = [f.name for f in self.frames[i:]] + [name]
                raise error_import_cycle(chain, span, source_line)
        if len(self.frames) >= self.max_depth:
            raise error_import_too_deep(self.max_depth, span, source_line)
        return canonical

    @contextmanager
    def entered(self, name: str, span: Optional[SourceSpan] = None,
                source_line: Optional[str] = None) -> Iterator[ImportFrame]:
        """Push `name` for the duration of the block; popped even on error."""
        frame = ImportFrame(self.check(name, span, source_line), name)
        self.frames.append(frame)
        logger.debug("entering %s (depth %d)", name, len(self.frames))
        try:
            yield frame
        finally:
            self.frames.pop()
            logger.debug("leaving %s", name)
