# Runs the real losetup/mkfs/mount tools. Needs root and
# LOOPIMAGE_INTEGRATION=1 in the environment.

import contextlib
import io
import os
import shutil
import tempfile
import unittest

from loopimage.config import ImageConfig
from loopimage.errors import MountError
from loopimage.mount import LoopMountController
from loopimage.orchestrator import Provisioner

MiB = 1024 * 1024

enabled = (
    os.environ.get("LOOPIMAGE_INTEGRATION") == "1"
    and os.geteuid() == 0
    and all(shutil.which(tool) for tool in ("mkfs.ext4", "losetup", "mount", "umount"))
)


@unittest.skipUnless(enabled, "needs root, ext4 tools and LOOPIMAGE_INTEGRATION=1")
class TestRealLifecycle(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.image = os.path.join(self.tmpdir.name, "disk.img")
        self.mount_dir = os.path.join(self.tmpdir.name, "mnt")
        self.source = os.path.join(self.tmpdir.name, "hello.txt")
        with open(self.source, "wb") as f:
            f.write(b"0123456789")

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_one_mib_image(self):
        conf = ImageConfig(image_path=self.image, mount_point=self.mount_dir,
                           size_bytes=MiB, source_file=self.source)
        with contextlib.redirect_stdout(io.StringIO()):
            report = Provisioner(conf).run()

        self.assertEqual(report.exit_code, 0)
        self.assertEqual(report.errors, [])
        self.assertEqual(os.path.getsize(self.image), MiB)
        self.assertFalse(os.path.ismount(self.mount_dir))
        self.assertFalse(os.path.exists(os.path.join(self.mount_dir, "file.txt")))

        # mounting again shows the copied bytes
        ctl = LoopMountController()
        ctl.mount(self.image, self.mount_dir, "ext4")
        try:
            with open(os.path.join(self.mount_dir, "file.txt"), "rb") as f:
                self.assertEqual(f.read(), b"0123456789")
        finally:
            ctl.unmount(self.mount_dir)

    def test_unformatted_image_fails_to_mount(self):
        with open(self.image, "wb") as f:
            f.truncate(MiB)
        with self.assertRaises(MountError):
            LoopMountController().mount(self.image, self.mount_dir, "ext4")
        self.assertFalse(os.path.ismount(self.mount_dir))


if __name__ == "__main__":
    unittest.main()
