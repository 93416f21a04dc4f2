import os
import tempfile
import unittest

from loopimage.allocator import allocate
from loopimage.errors import AllocError

MiB = 1024 * 1024


class TestAllocate(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, "disk.img")

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_length_is_exact(self):
        for size in (1, 512, 4097, MiB):
            image = allocate(self.path, size)
            self.assertTrue(image.allocated)
            self.assertEqual(os.path.getsize(self.path), size)

    def test_last_byte_is_zero(self):
        allocate(self.path, MiB)
        with open(self.path, "rb") as f:
            f.seek(MiB - 1)
            self.assertEqual(f.read(), b"\0")

    def test_reallocating_same_size_is_idempotent(self):
        allocate(self.path, MiB)
        allocate(self.path, MiB)
        self.assertEqual(os.path.getsize(self.path), MiB)

    def test_existing_contents_are_kept(self):
        with open(self.path, "wb") as f:
            f.write(b"superblock")
        allocate(self.path, MiB)
        with open(self.path, "rb") as f:
            self.assertEqual(f.read(10), b"superblock")
        self.assertEqual(os.path.getsize(self.path), MiB)

    def test_larger_file_is_shrunk(self):
        allocate(self.path, 2 * MiB)
        allocate(self.path, MiB)
        self.assertEqual(os.path.getsize(self.path), MiB)

    def test_zero_size_rejected(self):
        with self.assertRaises(AllocError):
            allocate(self.path, 0)
        self.assertFalse(os.path.exists(self.path))

    def test_negative_size_rejected(self):
        self.assertRaises(AllocError, allocate, self.path, -1)

    def test_missing_directory(self):
        path = os.path.join(self.tmpdir.name, "nope", "disk.img")
        with self.assertRaises(AllocError) as cm:
            allocate(path, MiB)
        self.assertEqual(cm.exception.step, "allocate")
        self.assertIsNotNone(cm.exception.errno)


if __name__ == "__main__":
    unittest.main()
