'''
Shared plumbing for the document tool sets: output target resolution and the
locked load-modify-save cycle every writing handler goes through.
'''

from typing import Any, Callable, Union

from ..paths import replace_suffix
from ..registry import ToolSet

import logging
logger = logging.getLogger(__name__)


def size_kb(size: int) -> str:
    return f"{size / 1024:.2f} KB"


def count(value: Any) -> int:
    return len(value) if value else 0


class DocumentTools(ToolSet):
    """ToolSet whose handlers write one artifact per call."""

    def source(self, args: dict, key: str = "filename") -> str:
        return self.paths.source(args[key])

    def media(self, location: str) -> str:
        """Image or media source: URLs pass through, files follow the path policy."""
        if location.startswith(("http://", "https://")):
            return location
        return self.paths.source(location)

    def target(self, args: dict, key: str = "filename") -> str:
        """Edit target: outputPath (or the input's directory) joined with the input's basename."""
        return self.paths.edit_target(args[key], args.get("outputPath"))

    def created(self, args: dict, name: str) -> str:
        """Create target: outputPath (or the default root) joined with name."""
        return self.paths.in_directory(name, args.get("outputPath"))

    def converted(self, args: dict, key: str, pattern: str, suffix: str) -> str:
        """outputPath taken as a file, else the input path with its extension swapped."""
        if args.get("outputPath"):
            return self.paths.resolve(args["outputPath"])
        path = replace_suffix(args[key], pattern, suffix)
        if path == args[key]:
            path += suffix
        return self.paths.resolve(path)

    def converted_in_place(self, args: dict, pattern: str, suffix: str = ".pdf") -> str:
        """Edit target for `filename` with its extension swapped for `suffix`."""
        renamed = replace_suffix(args["filename"], pattern, suffix)
        if renamed == args["filename"]:
            renamed += suffix
        return self.paths.edit_target(renamed, args.get("outputPath"))

    def save(self, path: str, produce: Callable[[], Any]) -> tuple[Any, int]:
        """Run `produce` and write its artifact while holding the lock on `path`.

        `produce` returns the artifact (bytes or str), or a tuple whose first item
        is the artifact. Returns (whatever produce returned, bytes written).
        """
        with self.paths.lock(path):
            result = produce()
            data: Union[bytes, str] = result[0] if isinstance(result, tuple) else result
            size = self.paths.write(path, data)
        return result, size

    def write_text(self, path: str, text: Union[bytes, str]) -> int:
        with self.paths.lock(path):
            return self.paths.write(path, text)
