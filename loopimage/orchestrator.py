"""Running the image lifecycle: allocate, format, mount, transfer, unmount."""

import contextlib
import sys
from dataclasses import dataclass, field

from loopimage.allocator import BackingImage, allocate
from loopimage.config import ImageConfig
from loopimage.errors import MountError, TransferError
from loopimage.formatter import Formatter, MkfsFormatter
from loopimage.mount import LoopMountController, MountController, MountPoint, mount_point_lock
from loopimage.transfer import TransferJob, copy_into


@dataclass
class ProvisionReport:
    image: BackingImage | None = None
    mount_point: MountPoint | None = None
    transfer: TransferJob | None = None
    bytes_copied: int | None = None
    transfer_error: TransferError | None = None
    unmount_error: MountError | None = None
    strict_transfer: bool = False
    strict_unmount: bool = False
    errors: list = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        if self.strict_transfer and self.transfer_error is not None:
            return 1
        if self.strict_unmount and self.unmount_error is not None:
            return 1
        return 0

    def to_dict(self) -> dict:
        return {
            "image": vars(self.image) if self.image else None,
            "mount_point": vars(self.mount_point) if self.mount_point else None,
            "transfer": vars(self.transfer) if self.transfer else None,
            "bytes_copied": self.bytes_copied,
            "errors": [e.to_dict() for e in self.errors],
            "exit_code": self.exit_code,
        }


class Provisioner:
    """Runs one image lifecycle for a configuration.

    Allocation, formatting and mounting failures propagate to the caller and
    stop the run. Transfer and unmount failures are reported and recorded but
    the run carries on, so a failed copy never leaks the mount.
    """

    def __init__(
        self,
        config: ImageConfig,
        formatter: Formatter | None = None,
        mounts: MountController | None = None,
    ):
        self.config = config
        self.formatter = formatter or MkfsFormatter(config.fs_type, config.mkfs_tool)
        self.mounts = mounts or LoopMountController(config.mount_options)

    def _status(self, message: str) -> None:
        print(message)

    def _degraded(self, report: ProvisionReport, error) -> None:
        print(f"loopimage: {error.step} failed: {error}", file=sys.stderr)
        report.errors.append(error)

    def run(self) -> ProvisionReport:
        config = self.config
        report = ProvisionReport(
            strict_transfer=config.strict_transfer,
            strict_unmount=config.strict_unmount,
        )

        with contextlib.ExitStack() as stack:
            # Held from allocation on, so a second run never reformats a mounted image.
            if config.lock_mount_point:
                stack.enter_context(mount_point_lock(config.mount_point))

            report.image = allocate(config.image_path, config.size_bytes)
            self._status(f"Allocated {config.size_bytes} byte image at {config.image_path}.")

            self.formatter.format(config.image_path)
            self._status(f"Formatted {config.image_path} as {config.fs_type}.")

            self._mounted_steps(report)

        return report

    def _mounted_steps(self, report: ProvisionReport) -> None:
        config = self.config

        report.mount_point = self.mounts.mount(config.image_path, config.mount_point,
                                               config.fs_type)
        self._status(f"Mounted {config.image_path} on {config.mount_point}.")

        try:
            if config.source_file is not None:
                self._transfer(report)
        finally:
            self._unmount(report)

    def _transfer(self, report: ProvisionReport) -> None:
        config = self.config
        report.transfer = TransferJob(config.source_file, config.destination)
        try:
            report.bytes_copied = copy_into(config.source_file, config.mount_point,
                                            config.destination, overwrite=config.overwrite)
        except TransferError as e:
            report.transfer_error = e
            self._degraded(report, e)
        else:
            self._status(f"Copied {config.source_file} to {config.destination}.")

    def _unmount(self, report: ProvisionReport) -> None:
        config = self.config
        try:
            self.mounts.unmount(config.mount_point)
        except MountError as e:
            e.step = "unmount"
            report.unmount_error = e
            self._degraded(report, e)
        else:
            report.mount_point.is_mounted = False
            self._status(f"Unmounted {config.mount_point}.")
