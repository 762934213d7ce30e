"""Shared helpers for building package trees."""

from pathlib import Path

import httpx
import pytest

TYPST_TOML = """
[package]
name = "foo"
version = "1.2.3"
entrypoint = "a.typ"
authors = ["Test Author"]
license = "MIT"
description = "Test package"
exclude = ["secret.txt"]
"""


def write_package(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create a package checkout with scripts/install.py and the given files."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
    script = root / "scripts" / "install.py"
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text("# install script\n")
    return script


def mock_client(files: dict[str, bytes], requested: list[str] | None = None) -> httpx.AsyncClient:
    """AsyncClient serving files keyed by URL path; anything else is a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requested is not None:
            requested.append(request.url.path)
        body = files.get(request.url.path)
        if body is None:
            return httpx.Response(404, text="Not Found")
        return httpx.Response(200, content=body)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def scenario_files() -> dict[str, str | bytes]:
    return {
        "typst.toml": TYPST_TOML,
        "a.typ": "#let hello = [Hello]\n",
        "secret.txt": "do not ship\n",
        "README.md": "# foo\n",
    }
