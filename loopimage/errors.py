"""Errors raised while provisioning a disk image."""


class ProvisionError(RuntimeError):
    """Base class for every failure of a lifecycle step."""

    step = "provision"

    def __init__(self, message: str, errno: int | None = None):
        super().__init__(message)
        self.errno = errno

    def to_dict(self) -> dict:
        return {"step": self.step, "error": str(self), "errno": self.errno}


class ConfigError(ProvisionError):
    step = "config"


class AllocError(ProvisionError):
    step = "allocate"


class FormatError(ProvisionError):
    step = "format"

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        launch_error: OSError | None = None,
    ):
        super().__init__(message, errno=launch_error.errno if launch_error else None)
        self.returncode = returncode
        self.launch_error = launch_error

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["returncode"] = self.returncode
        return result


class MountError(ProvisionError):
    step = "mount"

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        errno: int | None = None,
        step: str | None = None,
    ):
        super().__init__(message, errno=errno)
        self.returncode = returncode
        if step is not None:
            self.step = step

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["returncode"] = self.returncode
        return result


class AlreadyMountedError(MountError):
    pass


class TransferError(ProvisionError):
    step = "transfer"
    kind = "io"

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["kind"] = self.kind
        return result


class SourceNotFoundError(TransferError):
    kind = "source-not-found"


class SourceUnreadableError(TransferError):
    kind = "source-unreadable"


class DestinationUnwritableError(TransferError):
    kind = "destination-unwritable"


class TransferIOError(TransferError):
    kind = "io"
