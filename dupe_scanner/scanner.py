"""
Concurrent directory walk that reports duplicate files as they are found
"""

import os
import stat
import sys
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Set, Tuple, Union

from .core import calculate_file_hash
from .registry import FingerprintRegistry

DEFAULT_WORKERS = 8

DuplicateCallback = Callable[[str, str], None]
ErrorCallback = Callable[[str, BaseException], None]

_output_lock = threading.Lock()


def print_duplicate(path: str, original: str) -> None:
    """Write one duplicate pair to stdout"""
    with _output_lock:
        print(f"{path} = {original}", flush=True)


def print_error(path: str, error: BaseException) -> None:
    """Write a per-path diagnostic to stderr"""
    with _output_lock:
        print(f"Error reading {path}: {error}", file=sys.stderr, flush=True)


class TaskState(Enum):
    PENDING = "pending"
    HASHING = "hashing"
    CHECKING = "checking"
    REPORTED = "reported"
    RECORDED = "recorded"
    FAILED = "failed"


class ScanStats:
    """Counters for one scan, safe to update from worker threads"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.submitted = 0
        self.recorded = 0
        self.duplicates = 0
        self.failed = 0
        self.skipped = 0
        self.enumeration_errors = 0
        self.reclaimable = 0

    @property
    def completed(self) -> int:
        return self.recorded + self.duplicates + self.failed

    def increment(self, counter: str) -> None:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + 1)

    def record(self, state: TaskState, size: int = 0) -> None:
        """Count a task that reached a terminal state"""
        with self._lock:
            if state is TaskState.REPORTED:
                self.duplicates += 1
                self.reclaimable += size
            elif state is TaskState.RECORDED:
                self.recorded += 1
            elif state is TaskState.FAILED:
                self.failed += 1
            else:
                raise ValueError(f"{state} is not a terminal state")

    def __repr__(self) -> str:
        return (
            f"ScanStats(submitted={self.submitted}, recorded={self.recorded}, "
            f"duplicates={self.duplicates}, failed={self.failed}, "
            f"skipped={self.skipped}, enumeration_errors={self.enumeration_errors})"
        )


class ScanTask:
    """Hash one file and check its digest against the registry"""

    def __init__(self, path: str, registry: FingerprintRegistry) -> None:
        self.path = path
        self.registry = registry
        self.state = TaskState.PENDING
        self.digest: Optional[bytes] = None
        self.size = 0
        self.original: Optional[str] = None

    def run(self, on_duplicate: DuplicateCallback, on_error: ErrorCallback) -> TaskState:
        self.state = TaskState.HASHING
        try:
            self.size = os.path.getsize(self.path)
            self.digest = calculate_file_hash(self.path)
        except OSError as e:
            self.state = TaskState.FAILED
            on_error(self.path, e)
            return self.state

        self.state = TaskState.CHECKING
        self.original = self.registry.check_or_insert(self.digest, self.path)
        if self.original is None:
            self.state = TaskState.RECORDED
        else:
            on_duplicate(self.path, self.original)
            self.state = TaskState.REPORTED
        return self.state


class DupeScanner:
    """
    Walks a tree on the calling thread and hashes files on a worker pool

    Each call to find_dupes() is a separate session with its own registry
    and stats. Directory recursion never runs on the pool, so any pool
    size works for any tree depth.
    """

    def __init__(
            self,
            root: Union[str, Path] = ".",
            workers: int = DEFAULT_WORKERS,
            ignore_symlinks: bool = False,
            on_duplicate: Optional[DuplicateCallback] = None,
            on_error: Optional[ErrorCallback] = None,
    ) -> None:
        if workers < 1:
            raise ValueError("Worker count must be at least 1")

        self.root = os.fspath(root)
        self.workers = workers
        self.ignore_symlinks = ignore_symlinks
        self._on_duplicate = on_duplicate or print_duplicate
        self._on_error = on_error or print_error
        self.registry = FingerprintRegistry()
        self.stats = ScanStats()

    def find_dupes(self) -> ScanStats:
        """
        Scan the root and block until every submitted file is handled

        Returns:
            Stats for this scan

        Raises:
            OSError: if the root itself cannot be read
        """
        self.registry = FingerprintRegistry()
        self.stats = ScanStats()
        ancestors: Set[Tuple[int, int]] = set()

        # A symlinked file root is skipped without following it, even if dangling
        if (self.ignore_symlinks and os.path.islink(self.root)
                and not os.path.isdir(self.root)):
            self.stats.increment("skipped")
            return self.stats

        root_stat = os.stat(self.root)

        # Leaving the block waits for all submitted tasks, also when the walk raises
        with ThreadPoolExecutor(max_workers=self.workers,
                                thread_name_prefix="dupe-scanner") as pool:
            if stat.S_ISDIR(root_stat.st_mode):
                self._scan_directory(self.root, pool, ancestors)
            elif stat.S_ISREG(root_stat.st_mode):
                self._submit(pool, self.root)
            else:
                self.stats.increment("skipped")

        return self.stats

    def _scan_directory(self, path: str, pool: ThreadPoolExecutor,
                        ancestors: Set[Tuple[int, int]]) -> None:
        dir_stat = os.stat(path)
        key = (dir_stat.st_dev, dir_stat.st_ino)
        # Only a directory already on the current path is a loop
        if key in ancestors:
            return
        ancestors.add(key)

        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    if self.ignore_symlinks and entry.is_symlink():
                        self.stats.increment("skipped")
                        continue

                    if entry.is_dir():
                        self._scan_subdirectory(entry.path, pool, ancestors)
                    elif entry.is_file():
                        self._submit(pool, entry.path)
                    else:
                        # sockets, FIFOs, devices, dangling links
                        self.stats.increment("skipped")
        finally:
            ancestors.discard(key)

    def _scan_subdirectory(self, path: str, pool: ThreadPoolExecutor,
                           ancestors: Set[Tuple[int, int]]) -> None:
        try:
            self._scan_directory(path, pool, ancestors)
        except OSError as e:
            self.stats.increment("enumeration_errors")
            self._on_error(path, e)

    def _submit(self, pool: ThreadPoolExecutor, path: str) -> None:
        task = ScanTask(path, self.registry)
        self.stats.increment("submitted")
        future = pool.submit(task.run, self._on_duplicate, self._on_error)
        future.add_done_callback(lambda f: self._task_done(task, f))

    def _task_done(self, task: ScanTask, future: Future) -> None:
        error = future.exception()
        if error is None:
            self.stats.record(future.result(), task.size)
            return

        already_reported = task.state is TaskState.FAILED
        task.state = TaskState.FAILED
        self.stats.record(TaskState.FAILED)
        # run() hands read errors to on_error itself; if that call raised, don't retry it
        if not already_reported:
            self._on_error(task.path, error)


def scan(
        root: Union[str, Path],
        ignore_symlinks: bool = False,
        workers: int = DEFAULT_WORKERS,
        on_duplicate: Optional[DuplicateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
) -> ScanStats:
    """
    Find duplicate files under root, reporting each one as it is found

    Args:
        root: Directory or file to scan
        ignore_symlinks: Skip symlinked files and directories
        workers: Number of hashing threads
        on_duplicate: Called with (duplicate_path, original_path)
        on_error: Called with (path, exception) for unreadable paths

    Returns:
        Stats for the finished scan
    """
    scanner = DupeScanner(
        root,
        workers=workers,
        ignore_symlinks=ignore_symlinks,
        on_duplicate=on_duplicate,
        on_error=on_error,
    )
    return scanner.find_dupes()
