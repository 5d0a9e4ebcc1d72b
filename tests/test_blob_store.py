"""Unit tests for filesystem blob storage."""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from app.services.blob_store import BlobStore, stored_name_for
from app.services.errors import BlobMissingError, InvalidInputError, StorageIOError


class TestStoredNameFor(unittest.TestCase):
    """Stored names are the id plus a plain alphanumeric extension, if any."""

    def test_keeps_simple_extension(self) -> None:
        self.assertEqual(stored_name_for("abc", "report.pdf"), "abc.pdf")

    def test_keeps_last_extension_only(self) -> None:
        self.assertEqual(stored_name_for("abc", "archive.tar.gz"), "abc.gz")

    def test_drops_missing_or_unsafe_extension(self) -> None:
        self.assertEqual(stored_name_for("abc", "README"), "abc")
        self.assertEqual(stored_name_for("abc", "x.we!rd"), "abc")
        self.assertEqual(stored_name_for("abc", ""), "abc")


class TestBlobStore(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.base = Path(tmp.name) / "blobs"
        self.store = BlobStore(self.base)

    def test_creates_base_directory(self) -> None:
        self.assertTrue(self.base.is_dir())
        self.assertTrue(self.store.is_writable())

    def test_write_then_read(self) -> None:
        blob = self.store.write(b"hello world", "greeting.txt")
        self.assertEqual(blob.size, 11)
        self.assertTrue(blob.stored_name.startswith(blob.id))
        self.assertTrue(blob.stored_name.endswith(".txt"))
        self.assertEqual(self.store.read(blob.stored_name), b"hello world")

    def test_empty_blob(self) -> None:
        blob = self.store.write(b"", "empty.bin")
        self.assertEqual(blob.size, 0)
        self.assertEqual(self.store.read(blob.stored_name), b"")

    def test_writes_never_share_a_name(self) -> None:
        names = {self.store.write(b"x", "same.txt").stored_name for _ in range(20)}
        self.assertEqual(len(names), 20)

    def test_read_missing_blob(self) -> None:
        with self.assertRaises(BlobMissingError):
            self.store.read("does-not-exist")

    def test_delete(self) -> None:
        blob = self.store.write(b"data", "a.bin")
        self.assertTrue(self.store.delete(blob.stored_name))
        self.assertFalse(self.store.exists(blob.stored_name))

    def test_delete_missing(self) -> None:
        with self.assertRaises(BlobMissingError):
            self.store.delete("gone")
        self.assertFalse(self.store.delete("gone", missing_ok=True))

    def test_rejects_path_traversal(self) -> None:
        for name in ("../escape", "a/b", "..", ""):
            with self.subTest(name=name):
                with self.assertRaises(InvalidInputError):
                    self.store.read(name)

    def test_failed_write_leaves_nothing_behind(self) -> None:
        with patch("app.services.blob_store.os.fsync", side_effect=OSError("disk full")):
            with self.assertRaises(StorageIOError):
                self.store.write(b"partial", "a.bin")
        self.assertEqual(os.listdir(self.base), [])

    def test_write_syncs_file_and_directory(self) -> None:
        with patch("app.services.blob_store.os.fsync", wraps=os.fsync) as fsync:
            self.store.write(b"durable", "a.bin")
        self.assertEqual(fsync.call_count, 2)

    def test_failed_directory_sync_leaves_nothing_behind(self) -> None:
        with patch.object(self.store, "_fsync_dir", side_effect=OSError("EIO")):
            with self.assertRaises(StorageIOError):
                self.store.write(b"data", "a.bin")
        self.assertEqual(os.listdir(self.base), [])

    def test_iter_blobs_lists_files_only(self) -> None:
        first = self.store.write(b"1", "a.txt")
        second = self.store.write(b"2", "b.txt")
        (self.base / "subdir").mkdir()
        names = {name for name, _ in self.store.iter_blobs()}
        self.assertEqual(names, {first.stored_name, second.stored_name})


if __name__ == "__main__":
    unittest.main()
