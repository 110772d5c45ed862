"""
Content hashing helpers
"""

import hashlib
from pathlib import Path
from typing import Union

CHUNK_SIZE = 4096


def calculate_file_hash(filepath: Union[str, Path]) -> bytes:
    """
    Calculate SHA-1 digest of a file's contents

    The file is read in CHUNK_SIZE pieces, so memory use does not depend
    on the file size.

    Args:
        filepath: Path to the file

    Returns:
        20-byte SHA-1 digest

    Raises:
        OSError: if the file cannot be opened or read
    """
    hash_sha1 = hashlib.sha1()
    with open(filepath, 'rb') as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
            hash_sha1.update(chunk)
    return hash_sha1.digest()


def format_size(size_bytes: float) -> str:
    """
    Convert bytes to human-readable format

    Args:
        size_bytes: Size in bytes

    Returns:
        Human readable size string
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} TB"
