"""Backing file allocation."""

import os
from dataclasses import dataclass

from loopimage.errors import AllocError


@dataclass
class BackingImage:
    path: str
    size_bytes: int
    allocated: bool = False


def allocate(path: str, size_bytes: int) -> BackingImage:
    """Create or resize the file at path to exactly size_bytes.

    The length is set with ftruncate so the cost does not depend on the size,
    then the final byte is written so the last extent is really allocated
    rather than left as a hole.
    """
    image = BackingImage(path=path, size_bytes=size_bytes)
    if not isinstance(size_bytes, int) or isinstance(size_bytes, bool) or size_bytes <= 0:
        raise AllocError(f"Image size must be a positive number of bytes, got {size_bytes!r}")

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT, 0o644)
    except OSError as e:
        raise AllocError(f"Failed to open {path}: {e.strerror}", errno=e.errno) from e

    try:
        os.ftruncate(fd, size_bytes)
        written = os.pwrite(fd, b"\0", size_bytes - 1)
        if written != 1:
            raise AllocError(f"Short write at offset {size_bytes - 1} of {path}")
    except OSError as e:
        raise AllocError(f"Failed to allocate {size_bytes} bytes for {path}: {e.strerror}",
                         errno=e.errno) from e
    finally:
        os.close(fd)

    image.allocated = True
    return image
