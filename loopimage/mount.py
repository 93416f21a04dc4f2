# Copyright (C) Canonical Ltd.
# SPDX-License-Identifier: GPL-3.0-only
"""
Attaching a backing file to a loop device and mounting it.

The kernel will not mount a regular file directly, so the image is first
attached to a free loop device with losetup and that device is mounted.
Unmounting is never forced or lazy: a busy mount fails and stays in place.
"""

import abc
import errno
import fcntl
import os
import sys
from contextlib import contextmanager
from dataclasses import dataclass

from loopimage import commands
from loopimage.errors import AlreadyMountedError, MountError

LOSETUP = "losetup"
MOUNT = "mount"
UMOUNT = "umount"

# Options handled by the loop setup rather than passed to mount.
LOOP_OPTIONS = ("loop",)


@dataclass
class MountPoint:
    directory_path: str
    exists: bool = False
    is_mounted: bool = False
    device: str | None = None


def rebuild_options(options: dict) -> str:
    """Rebuild an options string from a dict, excluding loop options."""
    parts = []
    for key, value in options.items():
        if key in LOOP_OPTIONS:
            continue
        if value is None:
            parts.append(key)
        else:
            parts.append(f"{key}={value}")
    return ",".join(parts)


def ensure_mount_dir(mount_dir: str) -> MountPoint:
    """Create mount_dir and any missing parents. Existing directories are fine."""
    try:
        os.makedirs(mount_dir, exist_ok=True)
    except OSError as e:
        raise MountError(f"Failed to create mount point {mount_dir}: {e.strerror}",
                         errno=e.errno) from e
    return MountPoint(directory_path=mount_dir, exists=True)


@contextmanager
def mount_point_lock(mount_dir: str):
    """Hold an exclusive advisory lock for mount_dir while the block runs.

    The lock lives on a sibling file rather than on the directory itself: once
    something is mounted there, the path resolves to the mounted root and a
    second run would lock a different inode.
    """
    lock_path = mount_dir.rstrip("/") + ".lock"
    try:
        os.makedirs(os.path.dirname(os.path.abspath(lock_path)), exist_ok=True)
        fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o644)
    except OSError as e:
        raise MountError(f"Failed to open lock file {lock_path}: {e.strerror}",
                         errno=e.errno, step="lock") from e
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise MountError(f"{mount_dir} is in use by another run",
                             errno=errno.EWOULDBLOCK, step="lock") from e
        yield lock_path
    finally:
        os.close(fd)


class MountController(abc.ABC):
    @abc.abstractmethod
    def mount(self, image_path: str, mount_dir: str, fs_type: str) -> MountPoint:
        """Make the filesystem in image_path visible at mount_dir."""

    @abc.abstractmethod
    def unmount(self, mount_dir: str) -> None:
        """Detach the filesystem mounted at mount_dir."""


class LoopMountController(MountController):
    """Mounts images through a loop device using losetup, mount and umount."""

    def __init__(self, options: dict | None = None):
        self.options = dict(options or {})
        # mount directory -> loop device, for mounts made by this controller
        self.mounted = {}

    def _key(self, mount_dir: str) -> str:
        return os.path.abspath(mount_dir)

    def setup_loop_device(self, image_path: str) -> str:
        """Attach image_path to a free loop device and return the device path."""
        losetup_args = [LOSETUP, "--find", "--show"]
        if "ro" in self.options:
            losetup_args.append("-r")
        losetup_args.append(image_path)

        try:
            result = commands.run(losetup_args)
        except OSError as e:
            raise MountError(f"Failed to run {LOSETUP}: {e.strerror}", errno=e.errno) from e
        if result.returncode != 0:
            raise MountError(f"losetup failed: {result.stderr.strip()}",
                             returncode=result.returncode)

        device = result.stdout.strip()
        if not device.startswith("/dev/"):
            raise MountError(f"losetup returned unexpected device {device!r}")
        return device

    def detach_loop_device(self, device: str) -> None:
        try:
            result = commands.run([LOSETUP, "--detach", device])
        except OSError as e:
            print(f"loopimage: failed to detach {device}: {e.strerror}", file=sys.stderr)
            return
        if result.returncode != 0:
            print(f"loopimage: losetup --detach {device} returned {result.returncode}: "
                  f"{result.stderr.strip()}", file=sys.stderr)

    def mount(self, image_path: str, mount_dir: str, fs_type: str) -> MountPoint:
        key = self._key(mount_dir)
        if key in self.mounted:
            raise AlreadyMountedError(f"{mount_dir} is already mounted from {self.mounted[key]}")

        mount_point = ensure_mount_dir(mount_dir)
        device = self.setup_loop_device(image_path)

        mount_args = [MOUNT, "-t", fs_type]
        opt_str = rebuild_options(self.options)
        if opt_str:
            mount_args.extend(["-o", opt_str])
        mount_args.extend([device, mount_dir])

        try:
            result = commands.run(mount_args)
        except OSError as e:
            self.detach_loop_device(device)
            raise MountError(f"Failed to run {MOUNT}: {e.strerror}", errno=e.errno) from e
        if result.returncode != 0:
            self.detach_loop_device(device)
            raise MountError(
                f"Failed to mount {image_path} ({device}) on {mount_dir}: {result.stderr.strip()}",
                returncode=result.returncode,
            )

        self.mounted[key] = device
        mount_point.is_mounted = True
        mount_point.device = device
        return mount_point

    def unmount(self, mount_dir: str) -> None:
        key = self._key(mount_dir)
        try:
            result = commands.run([UMOUNT, mount_dir])
        except OSError as e:
            raise MountError(f"Failed to run {UMOUNT}: {e.strerror}",
                             errno=e.errno, step="unmount") from e
        if result.returncode != 0:
            raise MountError(f"Failed to unmount {mount_dir}: {result.stderr.strip()}",
                             returncode=result.returncode, step="unmount")

        device = self.mounted.pop(key, None)
        if device is not None:
            self.detach_loop_device(device)
