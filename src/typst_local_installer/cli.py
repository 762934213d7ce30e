"""Command-line entry point for typst-local-install."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from . import __version__
from .config import InstallerConfig
from .exceptions import InstallerError
from .installer import install_package
from .installer import list_installed_packages
from .installer import uninstall_package

logger = logging.getLogger("typst_local_installer")

DEFAULT_ORIGIN = str(Path("scripts") / "install.py")


def configure_logging(debug: bool) -> None:
    """Route installer logs to stderr; DEBUG adds per-file diagnostics."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    logger.propagate = False


def _parse_package_spec(value: str) -> tuple[str, str]:
    name, sep, version = value.rpartition(":")
    if not sep or not name or not version:
        raise argparse.ArgumentTypeError(f"expected NAME:VERSION, got {value!r}")
    return name, version


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="typst-local-install",
        description="Install a Typst package into the local package cache (@local namespace).",
    )
    parser.add_argument(
        "origin",
        nargs="?",
        default=DEFAULT_ORIGIN,
        help="path or URL of the package's install script; the package root is one level "
        f"above its directory (default: {DEFAULT_ORIGIN})",
    )
    parser.add_argument("--data-dir", type=Path, help="override the platform data directory")
    parser.add_argument("--debug", action="store_true", help="print diagnostic output (also: DEBUG=1)")
    parser.add_argument("--timeout", type=float, help="HTTP timeout in seconds for remote sources")

    actions = parser.add_mutually_exclusive_group()
    actions.add_argument(
        "--uninstall",
        metavar="NAME:VERSION",
        type=_parse_package_spec,
        help="remove an installed package version instead of installing",
    )
    actions.add_argument("--list", action="store_true", help="list installed local packages")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = InstallerConfig.from_env()
        debug = args.debug or config.debug
        timeout = args.timeout if args.timeout is not None else config.timeout
        configure_logging(debug)

        if args.list:
            for name, version in list_installed_packages(args.data_dir):
                print(f"@local/{name}:{version}")
            return 0

        if args.uninstall:
            name, version = args.uninstall
            removed = uninstall_package(name, version, args.data_dir)
            print(f"Uninstalled {name} v{version} from `{removed}`")
            return 0

        result = asyncio.run(install_package(args.origin, data_dir=args.data_dir, timeout=timeout, log=logger))
    except InstallerError as e:
        logger.error(e.message)
        return 1

    print(result.summary())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
