"""Package installation orchestration.

Process:
1. Resolve the data directory and the package source
2. Read typst.toml from the source
3. Delete any existing install of the same name+version, then recreate it
4. Sync the package files
5. Report the installed location

A failed run leaves the destination as-is; the next run's step 3 cleans it up.
"""

import logging
import shutil
from enum import Enum
from pathlib import Path

import httpx
from pydantic import BaseModel
from pydantic import ConfigDict

from .exceptions import FileSystemError
from .exceptions import InstallerError
from .exceptions import PackageNotInstalledError
from .paths import get_data_dir
from .paths import get_install_target
from .paths import get_packages_dir
from .schema import PackageMetadata
from .schema import check_package_name
from .schema import check_version
from .schema import load_package_metadata
from .sources import RemoteSource
from .sources import SourceHandle
from .sources import resolve_source
from .sync import INCLUDE_FILES
from .sync import sync_package_files

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class InstallState(Enum):
    IDLE = "idle"
    RESOLVING_PATHS = "resolving_paths"
    READING_METADATA = "reading_metadata"
    PREPARING_DESTINATION = "preparing_destination"
    SYNCING = "syncing"
    DONE = "done"
    FAILED = "failed"


class InstallResult(BaseModel):
    """Outcome of a successful installation."""

    model_config = ConfigDict(frozen=True)

    metadata: PackageMetadata
    destination: Path
    source: str
    files: list[str]

    @property
    def import_line(self) -> str:
        return f'#import "{self.metadata.import_spec}": *'

    def summary(self) -> str:
        """Human-readable success message."""
        return (
            f"Installed {self.metadata.name} v{self.metadata.version} successfully!\n"
            f"The package is stored in `{self.destination}`\n"
            f"\n"
            f"You can import the package with `{self.import_line}`"
        )


def prepare_destination(destination: Path, log: logging.Logger | None = None) -> None:
    """Remove any existing install at destination and create it empty."""
    log = log or logger
    try:
        if destination.exists():
            log.debug(f"Removing existing install at {destination}")
            shutil.rmtree(destination)
        destination.mkdir(parents=True)
    except OSError as e:
        raise FileSystemError(
            f"Failed to prepare install directory {destination}: {e}",
            context={"destination": str(destination)},
        ) from e


class PackageInstaller:
    """
    Installer for one package (one run per instance).

    Data directory, source and HTTP client can be injected; anything not
    injected is resolved from the environment and the origin.

    Example:
        >>> installer = PackageInstaller(origin="https://host/org/pkg/abc123/scripts/install.py")
        >>> result = await installer.install()
        >>> print(result.summary())
    """

    def __init__(
        self,
        origin: str | None = None,
        *,
        source: SourceHandle | None = None,
        data_dir: Path | None = None,
        client: httpx.AsyncClient | None = None,
        include_files: tuple[str, ...] = INCLUDE_FILES,
        timeout: float = DEFAULT_TIMEOUT,
        log: logging.Logger | None = None,
    ):
        if origin is None and source is None:
            raise ValueError("either origin or source is required")
        self.origin = origin
        self.source = source
        self.data_dir = data_dir
        self.client = client
        self.include_files = include_files
        self.timeout = timeout
        self.log = log or logger
        self.state = InstallState.IDLE

    def _enter(self, state: InstallState) -> None:
        self.log.debug(f"{self.state.value} -> {state.value}")
        self.state = state

    async def install(self) -> InstallResult:
        """
        Run the installation.

        Returns:
            InstallResult describing the installed package

        Raises:
            InstallerError: Any failure; state is left at FAILED
        """
        if self.state is not InstallState.IDLE:
            raise RuntimeError(f"installer already used (state: {self.state.value})")

        try:
            self._enter(InstallState.RESOLVING_PATHS)
            data_dir = self.data_dir if self.data_dir is not None else get_data_dir()
            source = self.source if self.source is not None else resolve_source(self.origin)
            self.log.debug(f"Using root directory: {source}")

            if isinstance(source, RemoteSource) and self.client is None:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    result = await self._install_from(source, data_dir, client)
            else:
                result = await self._install_from(source, data_dir, self.client)
        except Exception:
            self.state = InstallState.FAILED
            raise

        self._enter(InstallState.DONE)
        self.log.info(f"Successfully installed package: {result.metadata.name} v{result.metadata.version}")
        return result

    async def _install_from(
        self,
        source: SourceHandle,
        data_dir: Path,
        client: httpx.AsyncClient | None,
    ) -> InstallResult:
        self._enter(InstallState.READING_METADATA)
        meta = await load_package_metadata(source, client, log=self.log)
        self.log.debug(f"Installing package: {meta.name} v{meta.version}")

        self._enter(InstallState.PREPARING_DESTINATION)
        destination = get_install_target(data_dir, meta.name, meta.version)
        prepare_destination(destination, log=self.log)

        self._enter(InstallState.SYNCING)
        files = await sync_package_files(
            source,
            meta,
            destination,
            client=client,
            include_files=self.include_files,
            log=self.log,
        )
        return InstallResult(metadata=meta, destination=destination, source=str(source), files=files)


async def install_package(
    origin: str,
    *,
    data_dir: Path | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    log: logging.Logger | None = None,
) -> InstallResult:
    """
    Install the package whose install script lives at origin.

    Args:
        origin: Path or URL of the install script (package root is one level above its directory)
        data_dir: Data directory override (defaults to the platform data directory)
        client: HTTP client for remote sources (one is created if omitted)
        timeout: HTTP timeout in seconds when creating a client
        log: Logger for diagnostics

    Returns:
        InstallResult for the installed package

    Example:
        >>> result = await install_package("scripts/install.py")
        >>> result.destination
        PosixPath('/home/me/.local/share/typst/packages/local/foo/1.2.3')
    """
    installer = PackageInstaller(origin, data_dir=data_dir, client=client, timeout=timeout, log=log)
    return await installer.install()


def uninstall_package(name: str, version: str, data_dir: Path | None = None) -> Path:
    """
    Remove an installed package version.

    The <name> directory is removed too once no versions remain.

    Returns:
        Path that was removed

    Raises:
        InstallerError: If name or version is not a valid package name/version
        PackageNotInstalledError: If name+version is not installed
        FileSystemError: If removal fails
    """
    try:
        check_package_name(name)
        check_version(version)
    except ValueError as e:
        raise InstallerError(str(e), context={"name": name, "version": version}) from e

    data_dir = data_dir if data_dir is not None else get_data_dir()
    target = get_install_target(data_dir, name, version)

    if not target.is_dir():
        raise PackageNotInstalledError(
            f"Package {name} v{version} not found at {target}",
            context={"name": name, "version": version, "path": str(target)},
        )

    try:
        logger.info(f"Uninstalling package: {name} v{version}")
        shutil.rmtree(target)
        if not any(target.parent.iterdir()):
            target.parent.rmdir()
    except OSError as e:
        raise FileSystemError(f"Failed to uninstall {name} v{version}: {e}", context={"path": str(target)}) from e

    return target


def list_installed_packages(data_dir: Path | None = None) -> list[tuple[str, str]]:
    """List (name, version) pairs installed in the local namespace, sorted."""
    data_dir = data_dir if data_dir is not None else get_data_dir()
    packages_dir = get_packages_dir(data_dir)
    if not packages_dir.is_dir():
        return []

    return sorted(
        (package_dir.name, version_dir.name)
        for package_dir in packages_dir.iterdir()
        if package_dir.is_dir()
        for version_dir in package_dir.iterdir()
        if version_dir.is_dir()
    )
