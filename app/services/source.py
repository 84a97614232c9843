import asyncio
from pathlib import Path
from typing import Protocol

from app.errors import source_read_error


class ContentSource(Protocol):
    """Where the raw homepage JSON comes from.

    Implementations must be side-effect free: the cache may call
    :meth:`read_text` any number of times.
    """

    async def read_text(self) -> str: ...


class FileContentSource:
    """Reads the content file from disk without blocking the event loop."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"FileContentSource({str(self.path)!r})"

    async def read_text(self) -> str:
        """Return the file contents.

        Raises:
            AppError: kind ``"source_read"`` when the file is missing or unreadable.
        """
        try:
            return await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise source_read_error(f"Content file '{self.path}' not found.") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise source_read_error(f"Could not read content file '{self.path}': {exc}") from exc
