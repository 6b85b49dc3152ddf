"""File storage utilities for saving, loading and deleting binary blobs."""

import os
from pathlib import Path


def file_exists(filepath: str) -> bool:
    """
    Check if a file exists.

    Args:
        filepath: The path to check.

    Returns:
        True if the file exists, False otherwise.
    """
    return os.path.exists(filepath)


def load_bytes(filepath: str) -> bytes:
    """
    Load binary content from a file.

    Args:
        filepath: The path to the file to load.

    Returns:
        The file content.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        OSError: If the file cannot be read.
    """
    with open(filepath, "rb") as f:
        return f.read()


def save_bytes(content: bytes, filepath: str) -> str:
    """
    Save binary content to a file, creating directories if needed.

    Args:
        content: The bytes to save.
        filepath: The destination path.

    Returns:
        The absolute path where the file was saved.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(content)
    return str(path.resolve())


def delete_file(filepath: str) -> bool:
    """
    Delete a file if it exists.

    Args:
        filepath: The path to delete.

    Returns:
        True if a file was removed, False if there was nothing to remove.

    Raises:
        OSError: If the file exists but cannot be removed.
    """
    try:
        os.remove(filepath)
    except FileNotFoundError:
        return False
    return True
