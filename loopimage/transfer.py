"""Copying a file into the mounted image."""

import os
from dataclasses import dataclass

from loopimage.errors import (
    DestinationUnwritableError,
    SourceNotFoundError,
    SourceUnreadableError,
    TransferIOError,
)

CHUNK_SIZE = 64 * 1024


@dataclass
class TransferJob:
    source_path: str
    destination_relative_path: str


def destination_path(mount_dir: str, dest_relative_path: str) -> str:
    """Join dest_relative_path onto mount_dir, refusing paths that leave it."""
    root = os.path.abspath(mount_dir)
    dest = os.path.abspath(os.path.join(root, dest_relative_path))
    if dest == root or os.path.commonpath([root, dest]) != root:
        raise DestinationUnwritableError(
            f"Destination {dest_relative_path!r} is not inside {mount_dir}")
    return dest


def copy_into(
    source_path: str,
    mount_dir: str,
    dest_relative_path: str,
    overwrite: bool = True,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """Copy source_path to mount_dir/dest_relative_path and return the byte count.

    An existing destination is truncated, or rejected when overwrite is False.
    """
    dest = destination_path(mount_dir, dest_relative_path)

    try:
        src = open(source_path, "rb")
    except FileNotFoundError as e:
        raise SourceNotFoundError(f"Source file {source_path} not found", errno=e.errno) from e
    except OSError as e:
        raise SourceUnreadableError(f"Cannot read {source_path}: {e.strerror}",
                                    errno=e.errno) from e

    with src:
        try:
            dst = open(dest, "wb" if overwrite else "xb")
        except OSError as e:
            raise DestinationUnwritableError(f"Cannot write {dest}: {e.strerror}",
                                             errno=e.errno) from e

        copied = 0
        # Closing flushes the buffer again, so a full disk can surface there too.
        try:
            with dst:
                while True:
                    try:
                        chunk = src.read(chunk_size)
                    except OSError as e:
                        raise TransferIOError(f"Read from {source_path} failed: {e.strerror}",
                                              errno=e.errno) from e
                    if not chunk:
                        break
                    written = dst.write(chunk)
                    if written != len(chunk):
                        raise TransferIOError(
                            f"Short write to {dest}: {written} of {len(chunk)} bytes")
                    copied += written

                dst.flush()
                os.fsync(dst.fileno())
        except OSError as e:
            raise TransferIOError(f"Write to {dest} failed: {e.strerror}",
                                  errno=e.errno) from e

    return copied
