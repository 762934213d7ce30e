"""Data directory resolution and install target layout.

The layout follows Typst's local package convention:
<data-dir>/typst/packages/local/<name>/<version>
"""

import os
import platform
from collections.abc import Mapping
from pathlib import Path

from .exceptions import MissingEnvironmentError

NAMESPACE = "local"


def _require_env(environ: Mapping[str, str], variable: str, system: str) -> str:
    value = environ.get(variable)
    if not value:
        raise MissingEnvironmentError(
            f"${variable} is not set; cannot locate the data directory on {system}",
            context={"variable": variable, "system": system},
        )
    return value


def get_data_dir(system: str | None = None, environ: Mapping[str, str] | None = None) -> Path:
    """Return the per-user application data root for the operating system.

    Args:
        system: OS identity as reported by platform.system() (defaults to the running OS)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Path to the data directory

    Raises:
        MissingEnvironmentError: If HOME (or APPDATA on Windows) is unset

    Example:
        >>> get_data_dir("Linux", {"HOME": "/u"})
        PosixPath('/u/.local/share')
    """
    system = system or platform.system()
    environ = os.environ if environ is None else environ

    if system == "Darwin":
        return Path(_require_env(environ, "HOME", system)) / "Library" / "Application Support"
    if system == "Windows":
        return Path(_require_env(environ, "APPDATA", system))
    return Path(_require_env(environ, "HOME", system)) / ".local" / "share"


def get_packages_dir(data_dir: Path) -> Path:
    """Directory holding all locally-installed packages."""
    return data_dir / "typst" / "packages" / NAMESPACE


def get_install_target(data_dir: Path, name: str, version: str) -> Path:
    """Destination directory for one package version."""
    return get_packages_dir(data_dir) / name / version
