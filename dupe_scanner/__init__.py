"""
Dupe Scanner - A CLI utility that streams duplicate files as they are found
"""

__version__ = "1.0.0"
__author__ = "Ilya Boyarnikov"
__description__ = "A concurrent scanner that reports byte-identical files"

from .core import (
    CHUNK_SIZE,
    calculate_file_hash,
    format_size,
)
from .registry import FingerprintRegistry
from .scanner import (
    DEFAULT_WORKERS,
    DupeScanner,
    ScanStats,
    ScanTask,
    TaskState,
    print_duplicate,
    print_error,
    scan,
)
