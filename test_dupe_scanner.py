import unittest
import tempfile
import shutil
import threading
from pathlib import Path
from dupe_scanner.core import calculate_file_hash, format_size
from dupe_scanner.registry import FingerprintRegistry
from dupe_scanner.scanner import DupeScanner, TaskState, ScanTask


class TestFileHashing(unittest.TestCase):
    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.file1 = Path(self.test_dir) / "test1.txt"
        self.file2 = Path(self.test_dir) / "test2.txt"

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_calculate_hash_same_content(self):
        self.file1.write_text("Hello World")
        self.file2.write_text("Hello World")

        self.assertEqual(calculate_file_hash(self.file1), calculate_file_hash(self.file2),
                         "Same content should produce same digest")

    def test_calculate_hash_different_content(self):
        self.file1.write_text("Hello World")
        self.file2.write_text("Hello World!")

        self.assertNotEqual(calculate_file_hash(self.file1), calculate_file_hash(self.file2),
                            "A single extra byte should change the digest")

    def test_calculate_hash_empty_file(self):
        self.file1.touch()

        digest = calculate_file_hash(self.file1)
        self.assertEqual(len(digest), 20, "SHA-1 digest should be 20 bytes")

    def test_calculate_hash_binary_file(self):
        self.file1.write_bytes(bytes(range(256)) * 100)

        digest = calculate_file_hash(self.file1)
        self.assertEqual(len(digest), 20)

    def test_calculate_hash_ignores_file_name(self):
        self.file1.write_bytes(b"\x00\x01\x02\x03")
        renamed = Path(self.test_dir) / "completely_different_name.bin"
        shutil.copyfile(self.file1, renamed)

        self.assertEqual(calculate_file_hash(self.file1), calculate_file_hash(renamed))

    def test_calculate_hash_nonexistent_file(self):
        nonexistent = Path(self.test_dir) / "does_not_exist.txt"
        with self.assertRaises(OSError):
            calculate_file_hash(nonexistent)


class TestFormatSize(unittest.TestCase):
    def test_format_size_bytes(self):
        self.assertEqual(format_size(500), "500.0 B")
        self.assertEqual(format_size(0), "0.0 B")

    def test_format_size_kilobytes(self):
        self.assertEqual(format_size(1024), "1.0 KB")
        self.assertEqual(format_size(2048), "2.0 KB")

    def test_format_size_megabytes(self):
        self.assertEqual(format_size(3145728), "3.0 MB")  # 3*1024*1024


class TestFingerprintRegistry(unittest.TestCase):
    def test_many_threads_many_digests(self):
        registry = FingerprintRegistry()
        winners = []
        lock = threading.Lock()

        def worker(index):
            for digest_id in range(50):
                result = registry.check_or_insert(f"digest{digest_id}".encode(),
                                                  f"t{index}/{digest_id}")
                if result is None:
                    with lock:
                        winners.append(digest_id)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(registry), 50)
        self.assertEqual(sorted(winners), list(range(50)),
                         "Every digest should have exactly one winner")


class TestDupeScanner(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.pairs = []
        self.errors = []
        self.lock = threading.Lock()
        self.create_test_files()

    def create_test_files(self):
        for i in range(3):
            (self.test_dir / f"duplicate_group1_{i}.txt").write_text("This is duplicate content")

        for i in range(2):
            (self.test_dir / f"duplicate_group2_{i}.bin").write_bytes(b"\x00\x01\x02\x03")

        for i in range(3):
            (self.test_dir / f"empty_{i}.txt").touch()

        for filename, content in [("unique1.txt", "Content A"),
                                  ("unique2.txt", "Content B"),
                                  ("unique3.txt", "Content C")]:
            (self.test_dir / filename).write_text(content)

        nested_dir = self.test_dir / "nested"
        nested_dir.mkdir()
        (nested_dir / "duplicate_group1_nested.txt").write_text("This is duplicate content")

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def on_duplicate(self, path, original):
        with self.lock:
            self.pairs.append((path, original))

    def on_error(self, path, error):
        with self.lock:
            self.errors.append((path, error))

    def make_scanner(self, **kwargs):
        return DupeScanner(self.test_dir, on_duplicate=self.on_duplicate,
                           on_error=self.on_error, **kwargs)

    def test_find_dupes_counts(self):
        stats = self.make_scanner().find_dupes()

        # 4 text copies, 2 binary copies and 3 empty files form 3 groups
        self.assertEqual(stats.submitted, 12)
        self.assertEqual(stats.completed, 12)
        self.assertEqual(stats.duplicates, 3 + 1 + 2)
        self.assertEqual(stats.recorded, 6)
        self.assertEqual(stats.failed, 0)
        self.assertEqual(self.errors, [])

    def test_find_dupes_registry_contents(self):
        scanner = self.make_scanner()
        scanner.find_dupes()

        self.assertEqual(len(scanner.registry), 6)
        text_digest = calculate_file_hash(self.test_dir / "unique1.txt")
        self.assertEqual(scanner.registry.get(text_digest),
                         str(self.test_dir / "unique1.txt"))

    def test_find_dupes_never_pairs_file_with_itself(self):
        self.make_scanner(workers=3).find_dupes()

        for path, original in self.pairs:
            self.assertNotEqual(path, original)

    def test_find_dupes_reclaimable(self):
        stats = self.make_scanner().find_dupes()

        text_size = len("This is duplicate content")
        self.assertEqual(stats.reclaimable, 3 * text_size + 4)

    def test_nested_file_reported_against_group(self):
        self.make_scanner().find_dupes()

        nested = str(self.test_dir / "nested" / "duplicate_group1_nested.txt")
        involved = [pair for pair in self.pairs if nested in pair]
        self.assertEqual(len(involved), 1)

    def test_task_states_are_terminal(self):
        registry = FingerprintRegistry()
        tasks = [ScanTask(str(path), registry) for path in sorted(self.test_dir.glob("*.txt"))]

        for task in tasks:
            task.run(self.on_duplicate, self.on_error)

        terminal = {TaskState.REPORTED, TaskState.RECORDED, TaskState.FAILED}
        for task in tasks:
            self.assertIn(task.state, terminal)


if __name__ == "__main__":
    unittest.main()
