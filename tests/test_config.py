import unittest

from loopimage.config import ImageConfig, parse_options, parse_size
from loopimage.errors import ConfigError


class TestParseSize(unittest.TestCase):
    def test_sizes(self):
        self.assertEqual(parse_size(4096), 4096)
        self.assertEqual(parse_size("4096"), 4096)
        self.assertEqual(parse_size("1K"), 1024)
        self.assertEqual(parse_size("1M"), 1024 * 1024)
        self.assertEqual(parse_size("10G"), 10 * 1024 ** 3)
        self.assertEqual(parse_size("2GiB"), 2 * 1024 ** 3)
        self.assertEqual(parse_size("0"), 0)

    def test_invalid(self):
        for value in ("", "ten", "1.5G", "-1", None, True, 1.0):
            with self.assertRaises(ConfigError, msg=repr(value)):
                parse_size(value)


class TestImageConfig(unittest.TestCase):
    def test_defaults(self):
        conf = ImageConfig()
        self.assertEqual(conf.image_path, "/tmp/virtual_disk.img")
        self.assertEqual(conf.mount_point, "/tmp/virtual_disk")
        self.assertEqual(conf.size_bytes, 10 * 1024 ** 3)
        self.assertEqual(conf.fs_type, "ext4")
        self.assertEqual(conf.destination, "file.txt")
        self.assertIsNone(conf.source_file)
        self.assertTrue(conf.overwrite)
        self.assertFalse(conf.strict_unmount)

    def test_from_dict(self):
        conf = ImageConfig.from_dict({
            "image_path": "/srv/a.img",
            "size_bytes": "1M",
            "mount_options": "ro,uid=1000",
        }, lock_mount_point=True)
        self.assertEqual(conf.image_path, "/srv/a.img")
        self.assertEqual(conf.size_bytes, 1024 * 1024)
        self.assertEqual(conf.mount_options, {"ro": None, "uid": "1000"})
        self.assertTrue(conf.lock_mount_point)

    def test_unknown_keys(self):
        with self.assertRaises(ConfigError) as cm:
            ImageConfig.from_dict({"size": 1, "colour": "red"})
        self.assertIn("colour, size", str(cm.exception))

    def test_not_an_object(self):
        self.assertRaises(ConfigError, ImageConfig.from_dict, ["image_path"])

    def test_bad_types(self):
        self.assertRaises(ConfigError, ImageConfig.from_dict, {"image_path": 3})
        self.assertRaises(ConfigError, ImageConfig.from_dict, {"mount_options": 3})

    def test_parse_options(self):
        self.assertEqual(parse_options(""), {})
        self.assertEqual(parse_options("ro,,noexec"), {"ro": None, "noexec": None})


if __name__ == "__main__":
    unittest.main()
