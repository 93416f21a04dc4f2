"""Command line entry point."""

import argparse
import sys

from loopimage import config as config_mod
from loopimage.config import ImageConfig
from loopimage.errors import ProvisionError
from loopimage.orchestrator import Provisioner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loopimage",
        description="Create a file-backed disk image, format and mount it, "
                    "copy a file into it and unmount it again.",
    )
    parser.add_argument("source", nargs="?", help="File to copy into the image")
    parser.add_argument("--image", default=config_mod.DEFAULT_IMAGE_PATH,
                        help="Backing image path (default: %(default)s)")
    parser.add_argument("--mount-point", default=config_mod.DEFAULT_MOUNT_POINT,
                        help="Directory to mount the image on (default: %(default)s)")
    parser.add_argument("--size", default=str(config_mod.DEFAULT_SIZE),
                        help="Image size in bytes, or with a K/M/G/T suffix (default: 10G)")
    parser.add_argument("--fs-type", default=config_mod.DEFAULT_FS_TYPE,
                        help="Filesystem type (default: %(default)s)")
    parser.add_argument("--mkfs", dest="mkfs_tool",
                        help="Formatter executable (default: mkfs.<fs-type>)")
    parser.add_argument("--dest", default=config_mod.DEFAULT_DESTINATION,
                        help="Destination path inside the image (default: %(default)s)")
    parser.add_argument("--no-overwrite", action="store_true",
                        help="Fail instead of truncating an existing destination")
    parser.add_argument("-o", "--options", default="",
                        help="Comma separated mount options, e.g. ro,noexec")
    parser.add_argument("--strict-transfer", action="store_true",
                        help="Exit non-zero if the copy fails")
    parser.add_argument("--strict-unmount", action="store_true",
                        help="Exit non-zero if the unmount fails")
    parser.add_argument("--lock", action="store_true",
                        help="Hold an advisory lock on the mount point for the run")
    return parser


def config_from_args(args: argparse.Namespace) -> ImageConfig:
    return ImageConfig(
        image_path=args.image,
        mount_point=args.mount_point,
        size_bytes=config_mod.parse_size(args.size),
        fs_type=args.fs_type,
        mkfs_tool=args.mkfs_tool,
        source_file=args.source,
        destination=args.dest,
        overwrite=not args.no_overwrite,
        mount_options=config_mod.parse_options(args.options),
        strict_transfer=args.strict_transfer,
        strict_unmount=args.strict_unmount,
        lock_mount_point=args.lock,
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        conf = config_from_args(args)
        report = Provisioner(conf).run()
    except ProvisionError as e:
        print(f"loopimage: {e.step} failed: {e}", file=sys.stderr)
        return 1

    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
