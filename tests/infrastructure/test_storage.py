"""Tests for local file storage."""

from pathlib import Path

import pytest

from docvault.infrastructure.storage import LocalFileStorage, extract_text


@pytest.mark.asyncio
async def test_save_and_read(storage: LocalFileStorage):
    """Test that saved bodies land under the owner's directory."""
    path = await storage.save("alice", "report.md", b"# Report")

    assert Path(path).parent.name == "alice"
    assert path.endswith(".md")
    assert await storage.read(path) == b"# Report"


@pytest.mark.asyncio
async def test_save_same_filename_twice(storage: LocalFileStorage):
    """Test that equal filenames never overwrite each other."""
    first = await storage.save("alice", "notes.txt", b"one")
    second = await storage.save("alice", "notes.txt", b"two")

    assert first != second
    assert await storage.read(first) == b"one"


@pytest.mark.asyncio
async def test_delete_is_idempotent(storage: LocalFileStorage):
    """Test that deleting a missing file is not an error."""
    path = await storage.save("alice", "notes.txt", b"one")

    await storage.delete(path)
    await storage.delete(path)

    assert not Path(path).exists()


def test_extract_text():
    """Test that only text formats yield searchable text."""
    assert extract_text(b"a,b\n1,2", "text/csv") == "a,b\n1,2"
    assert extract_text("café".encode("utf-8"), "text/plain") == "café"
    assert extract_text(b"%PDF-1.7", "application/pdf") == ""
