"""Provision a file-backed disk image through its whole mount lifecycle."""

from loopimage.allocator import BackingImage, allocate
from loopimage.config import ImageConfig
from loopimage.formatter import Formatter, MkfsFormatter
from loopimage.mount import LoopMountController, MountController, MountPoint
from loopimage.orchestrator import ProvisionReport, Provisioner
from loopimage.transfer import TransferJob, copy_into

__version__ = "0.1.0"

__all__ = [
    "BackingImage",
    "Formatter",
    "ImageConfig",
    "LoopMountController",
    "MkfsFormatter",
    "MountController",
    "MountPoint",
    "ProvisionReport",
    "Provisioner",
    "TransferJob",
    "allocate",
    "copy_into",
]
