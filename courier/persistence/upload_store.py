"""
Upload store.

Writes uploaded files into the configured directory under a random name
and hands the name back to the caller. The original client filename is
only used for its extension.
"""

import secrets
from pathlib import Path
from typing import Protocol

import anyio

from ..exceptions import StoreUnavailable, ValidationFailure, create_error_context
from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes: ...


def _safe_suffix(original_name: str | None) -> str:
    if not original_name:
        return ""
    suffix = Path(original_name).suffix.lower()
    if len(suffix) > 16 or not suffix[1:].isalnum():
        return ""
    return suffix


class UploadStore:
    """Filesystem-backed binary upload storage."""

    def __init__(self, directory: str | Path, max_bytes: int) -> None:
        self.directory = Path(directory)
        self.max_bytes = max_bytes

    async def save(self, stream: AsyncReadable, original_name: str | None = None) -> str:
        """
        Persist an uploaded byte stream.

        Args:
            stream: Object with an async read(size) method, e.g. UploadFile
            original_name: Client supplied filename, used for the extension only

        Returns:
            The stored filename, relative to the upload directory

        Raises:
            ValidationFailure: If the upload is empty or larger than max_bytes
            StoreUnavailable: If the file cannot be written
        """
        filename = f"{secrets.token_hex(16)}{_safe_suffix(original_name)}"
        target = self.directory / filename
        context = create_error_context(metadata={"filename": filename})
        written = 0

        try:
            await anyio.Path(self.directory).mkdir(parents=True, exist_ok=True)
            async with await anyio.open_file(target, "wb") as out:
                while chunk := await stream.read(CHUNK_SIZE):
                    written += len(chunk)
                    if written > self.max_bytes:
                        break
                    await out.write(chunk)
        except OSError as e:
            await self._discard(target)
            raise StoreUnavailable(
                f"Failed to write upload: {e}",
                context,
                operation="upload",
                details={"original_error": str(e), "error_type": type(e).__name__},
            ) from e

        if written == 0 or written > self.max_bytes:
            await self._discard(target)
            if written == 0:
                raise ValidationFailure("Uploaded file is empty", context, field="file")
            raise ValidationFailure(f"Uploaded file exceeds {self.max_bytes} bytes", context, field="file")

        logger.info("Upload stored", filename=filename, size=written)
        return filename

    async def _discard(self, target: Path) -> None:
        """Remove a partially written upload."""
        try:
            await anyio.Path(target).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove partial upload", path=str(target), error=str(e))
