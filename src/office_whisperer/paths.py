'''
Output path policy shared by all tool handlers.

Without a data path, paths are used as given (after ~ expansion), so a caller
can write anywhere the process has permission. With a data path, relative
paths are taken inside it and any path that would land outside it is
re-rooted to <data_path>/<basename>.
'''

import os
import re
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Union

import logging
logger = logging.getLogger(__name__)


def _secure_makedirs(dir_path: str) -> None:
    """Create directory with owner-only permissions (0o700)."""
    if dir_path:
        os.makedirs(dir_path, mode=0o700, exist_ok=True)


def replace_suffix(path: str, pattern: str, suffix: str) -> str:
    """Swap a trailing extension matched by `pattern` (case-insensitive) for `suffix`."""
    return re.sub(pattern + r"$", suffix, path, flags=re.IGNORECASE)


class PathLocks:
    """One lock per absolute path, created on first use.

    Each entry counts its holders and waiters and is dropped when the last
    one leaves, so the table only contains paths that are in use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, list] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, path: str) -> Iterator[None]:
        key = os.path.abspath(path)
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


class OutputPaths:
    def __init__(self, data_path: Optional[str] = None):
        self.data_path = os.path.abspath(os.path.expanduser(data_path)) if data_path else None
        self.locks = PathLocks()
        if self.data_path:
            _secure_makedirs(self.data_path)

    @property
    def root(self) -> str:
        """Directory used when a tool gets no explicit output location."""
        return self.data_path or os.getcwd()

    def resolve(self, path: str) -> str:
        """Absolute path, confined to the data path when one is configured."""
        expanded = os.path.expanduser(path)
        if not self.data_path:
            return os.path.abspath(expanded)
        absolute = os.path.abspath(os.path.join(self.data_path, expanded))
        if os.path.commonpath([absolute, self.data_path]) != self.data_path:
            confined = os.path.join(self.data_path, os.path.basename(expanded))
            logger.warning(f"Path {path} is outside the data path, using {confined}")
            return confined
        return absolute

    def source(self, path: str) -> str:
        """Path of an input document."""
        return self.resolve(path)

    def edit_target(self, filename: str, output_path: Optional[str] = None) -> str:
        """outputPath (or the input's directory) joined with the input's basename."""
        directory = output_path or os.path.dirname(filename)
        return self.resolve(os.path.join(directory, os.path.basename(filename)))

    def in_directory(self, name: str, output_path: Optional[str] = None) -> str:
        """outputPath (or the default root) joined with name."""
        return self.resolve(os.path.join(output_path or self.root, name))

    def file_or_default(self, output_path: Optional[str], default_name: str) -> str:
        """outputPath taken as a file path, falling back to root/default_name."""
        if output_path:
            return self.resolve(output_path)
        return self.in_directory(default_name)

    @contextmanager
    def lock(self, path: str) -> Iterator[None]:
        """Serialize load-modify-save cycles on one output path."""
        with self.locks.hold(path):
            yield

    def write(self, path: str, data: Union[bytes, str]) -> int:
        """Write (overwriting) with owner-only permissions; returns the size in bytes."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        _secure_makedirs(os.path.dirname(path))
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        logger.info(f"Wrote {len(data)} bytes to {path}")
        return len(data)
