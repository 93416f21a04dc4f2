"""Writing a filesystem into a backing file."""

import abc
import os

from loopimage import commands
from loopimage.errors import FormatError


class Formatter(abc.ABC):
    @abc.abstractmethod
    def format(self, path: str) -> None:
        """Write filesystem structures into the image at path."""


class MkfsFormatter(Formatter):
    """Formats an image with the mkfs.<type> utility."""

    def __init__(self, fs_type: str = "ext4", tool: str | None = None):
        self.fs_type = fs_type
        self.tool = tool or f"mkfs.{fs_type}"

    def format(self, path: str) -> None:
        if not os.path.exists(path):
            raise FormatError(f"Image {path} does not exist")

        try:
            result = commands.run([self.tool, path])
        except OSError as e:
            raise FormatError(f"Failed to run {self.tool}: {e.strerror}", launch_error=e) from e

        if result.returncode != 0:
            raise FormatError(
                f"{self.tool} failed with exit code {result.returncode}: {result.stderr.strip()}",
                returncode=result.returncode,
            )
