"""
Safe local file access for tools that review source files.

Paths are resolved (following symlinks) and must land inside a configured
root directory, which blocks ``../`` traversal out of the workspace.
"""

from __future__ import annotations

import os
from pathlib import Path

import aiofiles
from pydantic import BaseModel


class FileAccessError(Exception):
    """A file could not be validated or read. The message is safe to show users."""


class FileValidationResult(BaseModel):
    is_valid: bool
    error: str | None = None


def validate_file_path(file_path: str | Path, allowed_root: str | Path) -> FileValidationResult:
    """
    Check that a path is inside ``allowed_root``, exists, is a file and is readable.

    Args:
        file_path: Path supplied by the caller (absolute or relative to the CWD)
        allowed_root: Directory the path must resolve into

    Returns:
        FileValidationResult with an error message when the path is rejected
    """
    try:
        resolved = Path(file_path).expanduser().resolve()
        root = Path(allowed_root).expanduser().resolve()
    except (OSError, RuntimeError) as e:
        return FileValidationResult(is_valid=False, error=f"Invalid path: {e}")

    if not resolved.is_relative_to(root):
        return FileValidationResult(
            is_valid=False,
            error="Access denied: Path is outside the allowed root directory",
        )

    if not resolved.exists():
        return FileValidationResult(is_valid=False, error="File not found")

    if not resolved.is_file():
        return FileValidationResult(is_valid=False, error="Path is not a regular file")

    if not os.access(resolved, os.R_OK):
        return FileValidationResult(is_valid=False, error="Permission denied: Cannot read file")

    return FileValidationResult(is_valid=True)


async def read_file_content(file_path: str | Path, allowed_root: str | Path) -> str:
    """
    Validate a path and read it as UTF-8 text.

    Raises:
        FileAccessError: If validation fails or the file cannot be decoded/read
    """
    validation = validate_file_path(file_path, allowed_root)
    if not validation.is_valid:
        raise FileAccessError(validation.error)

    path = Path(file_path).expanduser().resolve()
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            return await f.read()
    except UnicodeDecodeError:
        raise FileAccessError("Failed to read file: not valid UTF-8 text")
    except OSError as e:
        raise FileAccessError(f"Failed to read file: {e.strerror or type(e).__name__}") from e


def file_exists(file_path: str | Path) -> bool:
    """Return True if the path exists and is readable."""
    path = Path(file_path)
    return path.exists() and os.access(path, os.R_OK)
