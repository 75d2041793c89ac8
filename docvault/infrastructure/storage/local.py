"""Local filesystem storage for uploaded and generated document bodies."""

import uuid
from pathlib import PurePath

import anyio

from ...modules.common.constants import TEXT_MIME_TYPES
from ...modules.common.exceptions import StorageError
from ..logging import get_logger

logger = get_logger(__name__)


class LocalFileStorage:
    """Stores file bodies under ``root/<owner_id>/<uuid><ext>``.

    Paths returned by :meth:`save` are what documents keep in
    ``storage_path``; nothing else about the layout is relied upon.
    """

    def __init__(self, root: str):
        self.root = anyio.Path(root)

    async def save(self, owner_id: str, filename: str, content: bytes) -> str:
        directory = self.root / owner_id
        path = directory / f"{uuid.uuid4().hex}{PurePath(filename).suffix}"
        try:
            await directory.mkdir(parents=True, exist_ok=True)
            await path.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to store file '{filename}': {e}") from e
        return str(path)

    async def read(self, storage_path: str) -> bytes:
        try:
            return await anyio.Path(storage_path).read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read stored file: {e}") from e

    async def delete(self, storage_path: str) -> None:
        """Remove a stored file. A file that is already gone is not an error."""
        try:
            await anyio.Path(storage_path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete stored file {storage_path}: {e}")


def extract_text(content: bytes, mime_type: str) -> str:
    """Plain-text view of a file body used for search.

    Only text formats are decoded; binary formats yield an empty string.
    """
    if mime_type not in TEXT_MIME_TYPES:
        return ""
    return content.decode("utf-8", errors="replace")
