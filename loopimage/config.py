"""Configuration for a single image lifecycle."""

import dataclasses
import re
from dataclasses import dataclass, field

from loopimage.errors import ConfigError

DEFAULT_IMAGE_PATH = "/tmp/virtual_disk.img"
DEFAULT_MOUNT_POINT = "/tmp/virtual_disk"
DEFAULT_SIZE = 10 * 1024 * 1024 * 1024
DEFAULT_FS_TYPE = "ext4"
DEFAULT_DESTINATION = "file.txt"

_SIZE_RE = re.compile(r"^\s*(\d+)\s*([KMGT]?)(i?B)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"": 0, "K": 1, "M": 2, "G": 3, "T": 4}


def parse_size(value) -> int:
    """Parse a byte count such as 1048576, "1M" or "10GiB"."""
    if isinstance(value, bool):
        raise ConfigError(f"Invalid size: {value!r}")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ConfigError(f"Invalid size: {value!r}")
    match = _SIZE_RE.match(value)
    if match is None:
        raise ConfigError(f"Invalid size: {value!r}")
    number, unit, _ = match.groups()
    return int(number) * 1024 ** _SIZE_UNITS[unit.upper()]


def parse_options(value: str) -> dict:
    """Split a mount option string like "ro,uid=1000" into a dict."""
    options = {}
    for opt in value.split(","):
        if not opt:
            continue
        if "=" in opt:
            key, val = opt.split("=", 1)
            options[key] = val
        else:
            options[opt] = None
    return options


@dataclass
class ImageConfig:
    """Paths, size and failure policy for one provisioning run.

    The defaults reproduce the classic fixed layout: a 10 GiB ext4 image at
    /tmp/virtual_disk.img mounted on /tmp/virtual_disk.
    """

    image_path: str = DEFAULT_IMAGE_PATH
    mount_point: str = DEFAULT_MOUNT_POINT
    size_bytes: int = DEFAULT_SIZE
    fs_type: str = DEFAULT_FS_TYPE
    # Formatter executable; None means mkfs.<fs_type>.
    mkfs_tool: str | None = None
    source_file: str | None = None
    destination: str = DEFAULT_DESTINATION
    overwrite: bool = True
    mount_options: dict = field(default_factory=dict)
    strict_transfer: bool = False
    strict_unmount: bool = False
    lock_mount_point: bool = False

    @classmethod
    def from_dict(cls, data: dict, **overrides) -> "ImageConfig":
        """Build a config from a JSON-style mapping, rejecting unknown keys."""
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object")

        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        values = dict(data)
        values.update(overrides)
        if "size_bytes" in values:
            values["size_bytes"] = parse_size(values["size_bytes"])
        options = values.get("mount_options")
        if isinstance(options, str):
            values["mount_options"] = parse_options(options)
        elif options is not None and not isinstance(options, dict):
            raise ConfigError("mount_options must be a string or an object")

        for name in ("image_path", "mount_point", "fs_type", "destination"):
            if name in values and not isinstance(values[name], str):
                raise ConfigError(f"{name} must be a string")

        return cls(**values)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)
