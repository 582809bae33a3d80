"""Local disk implementation of the filesystem port."""

from __future__ import annotations

from pathlib import Path


class LocalFileSystem:
    """UTF-8 text files on the local disk.

    Parent directories are not created implicitly.
    """

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def read_text(self, path: Path) -> str:
        return Path(path).read_text("utf-8")

    def write_text(self, path: Path, content: str) -> None:
        Path(path).write_text(content, "utf-8")

    def remove(self, path: Path) -> None:
        Path(path).unlink()
