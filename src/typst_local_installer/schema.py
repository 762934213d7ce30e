"""Package metadata schema - Parse typst.toml descriptors.

Only the [package] table is read. name, version and entrypoint are required;
the descriptive fields are carried through without validation.
"""

import logging
import re
import tomllib
from pathlib import Path
from pathlib import PurePosixPath
from pathlib import PureWindowsPath

import httpx
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError
from pydantic import field_validator

from .exceptions import FileSystemError
from .exceptions import MetadataParseError
from .exceptions import MetadataShapeError
from .exceptions import TransferError
from .sources import LocalSource
from .sources import RemoteSource
from .sources import SourceHandle

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")


def check_package_name(value: str) -> str:
    """Reject names that are not a single directory component."""
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise ValueError(f"package name must be a non-empty directory name, got {value!r}")
    return value


def check_version(value: str) -> str:
    if not VERSION_PATTERN.match(value):
        raise ValueError(f"version must be MAJOR.MINOR.PATCH, got {value!r}")
    return value


def check_relative_path(value: str) -> str:
    """Reject paths that would leave the package directory."""
    posix = PurePosixPath(value.replace("\\", "/"))
    if not value or posix.is_absolute() or PureWindowsPath(value).drive or ".." in posix.parts:
        raise ValueError(f"path must be relative to the package root, got {value!r}")
    return value


class PackageMetadata(BaseModel):
    """
    Package metadata from the [package] table of typst.toml.

    Immutable: parsed once per run and passed by value.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Required
    name: str
    version: str
    entrypoint: str

    # Consumed by the local sync strategy
    exclude: frozenset[str] = Field(default_factory=frozenset)

    # Descriptive only
    description: str = ""
    authors: list[str] = Field(default_factory=list)
    license: str | None = None
    homepage: str | None = None
    repository: str | None = None
    keywords: list[str] = Field(default_factory=list)
    compiler: str | None = None

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        return check_package_name(value)

    @field_validator("version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        return check_version(value)

    @field_validator("entrypoint")
    @classmethod
    def _check_entrypoint(cls, value: str) -> str:
        return check_relative_path(value)

    @property
    def import_spec(self) -> str:
        """Package reference a document imports, e.g. @local/foo:1.2.3."""
        return f"@local/{self.name}:{self.version}"

    @classmethod
    def from_toml(cls, text: str, source: str = "<string>") -> "PackageMetadata":
        """
        Parse package metadata from typst.toml content.

        Args:
            text: TOML document text
            source: Where the text came from (used in error messages)

        Returns:
            PackageMetadata instance

        Raises:
            MetadataParseError: If the text is not valid TOML
            MetadataShapeError: If [package] or required fields are missing or invalid
        """
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise MetadataParseError(f"Invalid TOML in {source}: {e}", context={"source": source}) from e

        package = data.get("package")
        if not isinstance(package, dict):
            raise MetadataShapeError(f"[package] table missing in {source}", context={"source": source})

        try:
            return cls.model_validate(package)
        except ValidationError as e:
            raise MetadataShapeError(
                f"Invalid [package] table in {source}: {e}",
                context={"source": source, "errors": e.errors(include_url=False)},
            ) from e

    @classmethod
    def from_path(cls, path: Path) -> "PackageMetadata":
        """Load metadata from a local typst.toml file."""
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise FileSystemError(f"Cannot read {path}: {e}", context={"path": str(path)}) from e
        except UnicodeDecodeError as e:
            raise MetadataParseError(f"{path} is not UTF-8 text: {e}", context={"source": str(path)}) from e
        return cls.from_toml(text, source=str(path))

    @classmethod
    async def from_url(cls, url: str, client: httpx.AsyncClient) -> "PackageMetadata":
        """Fetch and load metadata from a remote typst.toml."""
        body = await fetch_bytes(client, url)
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MetadataParseError(f"{url} is not UTF-8 text: {e}", context={"source": url}) from e
        return cls.from_toml(text, source=url)


async def fetch_bytes(client: httpx.AsyncClient, url: str) -> bytes:
    """GET a URL and return the body.

    Raises:
        TransferError: On network errors or non-2xx responses
    """
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise TransferError(
            f"Fetching {url} failed with HTTP {e.response.status_code}",
            context={"url": url, "status_code": e.response.status_code},
        ) from e
    except httpx.HTTPError as e:
        raise TransferError(f"Fetching {url} failed: {e}", context={"url": url}) from e
    return response.content


async def load_package_metadata(
    handle: SourceHandle,
    client: httpx.AsyncClient | None = None,
    log: logging.Logger | None = None,
) -> PackageMetadata:
    """
    Load metadata from the descriptor of a resolved source.

    Args:
        handle: Resolved package source
        client: HTTP client, required for remote sources
        log: Logger for diagnostics (defaults to this module's logger)

    Returns:
        Parsed PackageMetadata
    """
    log = log or logger
    match handle:
        case LocalSource():
            log.debug(f"Reading package metadata from {handle.descriptor_path}")
            return PackageMetadata.from_path(handle.descriptor_path)
        case RemoteSource():
            if client is None:
                raise TypeError("an httpx.AsyncClient is required for remote sources")
            log.debug(f"Reading package metadata from {handle.descriptor_url}")
            return await PackageMetadata.from_url(handle.descriptor_url, client)
