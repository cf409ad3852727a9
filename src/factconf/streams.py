"""
Stream-opening strategies.

The interpreter never touches the filesystem directly: it asks a
StreamOpener to open a name, and uses the opener's path rules to resolve
imports. Hosts can substitute virtual filesystems or bundles.
"""

import io
import os
import posixpath
from abc import ABC, abstractmethod
from typing import IO, Dict, Optional


class StreamOpener(ABC):
    """Opens readable text streams for names."""

    @abstractmethod
    def open(self, name: str, mode: str = "r") -> IO[str]:
        """Open `name` for reading; raise OSError if it cannot be opened."""
        pass

    def is_absolute(self, name: str) -> bool:
        return os.path.isabs(name)

    def dirname(self, name: str) -> str:
        return os.path.dirname(name)

    def join(self, directory: str, name: str) -> str:
        return os.path.join(directory, name) if directory else name

    def canonical(self, name: str) -> str:
        """Name used to detect that two paths refer to the same source."""
        return os.path.realpath(name)

    def cwd(self) -> str:
        """Directory used for relative imports when no file is being evaluated."""
        return os.getcwd()


class FileStreamOpener(StreamOpener):
    """Opens local files in text mode."""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def open(self, name: str, mode: str = "r") -> IO[str]:
        if os.path.isdir(name):
            raise IsADirectoryError(name)
        return open(name, mode, encoding=self.encoding)


class MemoryStreamOpener(StreamOpener):
    """
    Serves sources from an in-memory mapping of POSIX-style paths to text.

    Relative names are resolved against `cwd` ("/" by default).
    """

    def __init__(self, files: Optional[Dict[str, str]] = None, cwd: str = "/"):
        self._cwd = cwd
        self.files: Dict[str, str] = {}
        for name, text in (files or {}).items():
            self.add(name, text)

    def _absolute(self, name: str) -> str:
        return posixpath.normpath(posixpath.join(self._cwd, name))

    def add(self, name: str, text: str) -> None:
        self.files[self._absolute(name)] = text

    def open(self, name: str, mode: str = "r") -> IO[str]:
        key = self._absolute(name)
        if key not in self.files:
            raise FileNotFoundError(name)
        return io.StringIO(self.files[key])

    def is_absolute(self, name: str) -> bool:
        return posixpath.isabs(name)

    def dirname(self, name: str) -> str:
        return posixpath.dirname(name)

    def join(self, directory: str, name: str) -> str:
        return posixpath.join(directory, name) if directory else name

    def canonical(self, name: str) -> str:
        return self._absolute(name)

    def cwd(self) -> str:
        return self._cwd
