"""Package source resolution - Where the files to install come from.

The installer runs either from a checkout on disk or from a URL pointing at a
pinned revision. Provenance is decided once here and carried by value; nothing
downstream inspects the execution context again.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal
from urllib.parse import urljoin
from urllib.parse import urlsplit
from urllib.request import url2pathname

TYPST_TOML_FILENAME = "typst.toml"

REMOTE_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class LocalSource:
    """Package checkout on the local filesystem."""

    root_path: Path
    kind: Literal["local"] = "local"

    @property
    def descriptor_path(self) -> Path:
        return self.root_path / TYPST_TOML_FILENAME

    def __str__(self) -> str:
        return str(self.root_path)


@dataclass(frozen=True)
class RemoteSource:
    """Package published at a URL; files are fetched one at a time."""

    base_url: str
    kind: Literal["remote"] = "remote"

    def url_for(self, file_name: str) -> str:
        """Join a package-relative file name onto the base URL."""
        return urljoin(self.base_url, file_name.lstrip("/"))

    @property
    def descriptor_url(self) -> str:
        return self.url_for(TYPST_TOML_FILENAME)

    def __str__(self) -> str:
        return self.base_url


SourceHandle = LocalSource | RemoteSource


def is_remote_origin(origin: str) -> bool:
    """Check whether an origin string is a network address."""
    return urlsplit(origin).scheme.lower() in REMOTE_SCHEMES


def resolve_source(origin: str) -> SourceHandle:
    """
    Resolve the package source from the install script's own location.

    The package root is one level above the directory holding the script
    (scripts/install.py lives in <root>/scripts/).

    Args:
        origin: Location of the install script - a filesystem path, a file:// URL,
                or an http(s):// URL

    Returns:
        RemoteSource for http(s) origins, LocalSource otherwise

    Example:
        >>> resolve_source("https://example.com/org/pkg/abc123/scripts/install.py")
        RemoteSource(base_url='https://example.com/org/pkg/abc123/', kind='remote')
        >>> resolve_source("/work/pkg/scripts/install.py")
        LocalSource(root_path=PosixPath('/work/pkg'), kind='local')
    """
    if is_remote_origin(origin):
        parts = urlsplit(origin)
        # Query and fragment belong to the script URL, not to its siblings
        script_url = parts._replace(query="", fragment="").geturl()
        return RemoteSource(base_url=urljoin(script_url, ".."))

    if urlsplit(origin).scheme.lower() == "file":
        script_path = url2pathname(urlsplit(origin).path)
    else:
        script_path = origin

    script_dir = os.path.dirname(os.path.abspath(script_path))
    return LocalSource(root_path=Path(os.path.dirname(script_dir)))
