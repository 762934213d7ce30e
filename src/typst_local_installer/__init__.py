"""typst-local-installer - Install Typst packages into the local package cache.

Installs a package checkout (or a pinned remote revision) into
<data-dir>/typst/packages/local/<name>/<version> so documents can
`#import "@local/<name>:<version>"` without network access.
"""

from .config import InstallerConfig
from .exceptions import FileSystemError
from .exceptions import InstallerError
from .exceptions import MetadataError
from .exceptions import MetadataParseError
from .exceptions import MetadataShapeError
from .exceptions import MissingEnvironmentError
from .exceptions import PackageNotInstalledError
from .exceptions import TransferError
from .installer import InstallResult
from .installer import InstallState
from .installer import PackageInstaller
from .installer import install_package
from .installer import list_installed_packages
from .installer import uninstall_package
from .paths import NAMESPACE
from .paths import get_data_dir
from .paths import get_install_target
from .schema import PackageMetadata
from .schema import load_package_metadata
from .sources import TYPST_TOML_FILENAME
from .sources import LocalSource
from .sources import RemoteSource
from .sources import SourceHandle
from .sources import resolve_source
from .sync import INCLUDE_FILES
from .sync import sync_package_files

__all__ = [
    # Paths
    "NAMESPACE",
    "get_data_dir",
    "get_install_target",
    # Metadata
    "TYPST_TOML_FILENAME",
    "PackageMetadata",
    "load_package_metadata",
    # Sources
    "LocalSource",
    "RemoteSource",
    "SourceHandle",
    "resolve_source",
    # Sync
    "INCLUDE_FILES",
    "sync_package_files",
    # Installation
    "InstallResult",
    "InstallState",
    "PackageInstaller",
    "install_package",
    "uninstall_package",
    "list_installed_packages",
    # Configuration
    "InstallerConfig",
    # Exceptions
    "InstallerError",
    "MissingEnvironmentError",
    "MetadataError",
    "MetadataParseError",
    "MetadataShapeError",
    "TransferError",
    "FileSystemError",
    "PackageNotInstalledError",
]

__version__ = "0.1.0"
