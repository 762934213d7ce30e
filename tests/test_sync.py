"""Tests for file synchronization (local walk and remote allow-list)."""

import tempfile
from pathlib import Path

import pytest
from conftest import TYPST_TOML
from conftest import mock_client
from conftest import write_package
from typst_local_installer import FileSystemError
from typst_local_installer import INCLUDE_FILES
from typst_local_installer import LocalSource
from typst_local_installer import PackageMetadata
from typst_local_installer import RemoteSource
from typst_local_installer import TransferError
from typst_local_installer import sync_package_files
from typst_local_installer.sync import remote_include_files


def _relative_files(root: Path) -> set[str]:
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()}


@pytest.mark.asyncio
async def test_local_sync_applies_exclude(scenario_files):
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "pkg"
        write_package(root, scenario_files)
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_path(root / "typst.toml")

        written = await sync_package_files(LocalSource(root_path=root), meta, dest)

        assert _relative_files(dest) == {"typst.toml", "a.typ", "README.md", "scripts/install.py"}
        assert not (dest / "secret.txt").exists()
        assert sorted(written) == sorted(_relative_files(dest))


@pytest.mark.asyncio
async def test_local_sync_copies_bytes_verbatim():
    content = b"line one\r\nline two\n\x00\xff binary tail"
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "pkg"
        write_package(root, {"typst.toml": TYPST_TOML, "data/blob.bin": content})
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_path(root / "typst.toml")

        await sync_package_files(LocalSource(root_path=root), meta, dest)

        assert (dest / "data" / "blob.bin").read_bytes() == content


@pytest.mark.asyncio
async def test_local_sync_nested_exclude():
    toml = TYPST_TOML.replace('exclude = ["secret.txt"]', 'exclude = ["docs/draft.md", "missing.txt"]')
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "pkg"
        write_package(
            root,
            {"typst.toml": toml, "a.typ": "", "docs/guide.md": "guide", "docs/draft.md": "draft"},
        )
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_path(root / "typst.toml")

        await sync_package_files(LocalSource(root_path=root), meta, dest)

        assert (dest / "docs" / "guide.md").read_text() == "guide"
        assert not (dest / "docs" / "draft.md").exists()


@pytest.mark.asyncio
async def test_local_sync_exclude_is_exact_path():
    """Exclude entries are paths, not patterns."""
    toml = TYPST_TOML.replace('exclude = ["secret.txt"]', 'exclude = ["*.txt"]')
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "pkg"
        write_package(root, {"typst.toml": toml, "a.typ": "", "notes.txt": "notes"})
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_path(root / "typst.toml")

        await sync_package_files(LocalSource(root_path=root), meta, dest)

        assert (dest / "notes.txt").exists()


@pytest.mark.asyncio
async def test_local_sync_skips_empty_directories(scenario_files):
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "pkg"
        write_package(root, scenario_files)
        (root / "empty").mkdir()
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_path(root / "typst.toml")

        await sync_package_files(LocalSource(root_path=root), meta, dest)

        assert not (dest / "empty").exists()


def test_remote_include_files_adds_entrypoint():
    meta = PackageMetadata.from_toml(TYPST_TOML)

    assert remote_include_files(meta) == [*INCLUDE_FILES, "a.typ"]


def test_remote_include_files_no_duplicate():
    meta = PackageMetadata.from_toml(TYPST_TOML.replace('entrypoint = "a.typ"', 'entrypoint = "README.md"'))

    assert remote_include_files(meta) == list(INCLUDE_FILES)


@pytest.mark.asyncio
async def test_remote_sync_fetches_allow_list():
    served = {
        "/org/pkg/abc/typst.toml": TYPST_TOML.encode(),
        "/org/pkg/abc/README.md": b"# foo\r\n",
        "/org/pkg/abc/a.typ": b"#let hello = [Hello]\n",
        "/org/pkg/abc/secret.txt": b"never requested",
        "/org/pkg/abc/other.typ": b"not in allow-list",
    }
    requested: list[str] = []
    with tempfile.TemporaryDirectory() as tmpdir:
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_toml(TYPST_TOML)
        source = RemoteSource(base_url="https://example.com/org/pkg/abc/")

        async with mock_client(served, requested) as client:
            written = await sync_package_files(source, meta, dest, client=client)

        assert written == ["typst.toml", "README.md", "a.typ"]
        assert requested == ["/org/pkg/abc/typst.toml", "/org/pkg/abc/README.md", "/org/pkg/abc/a.typ"]
        assert _relative_files(dest) == {"typst.toml", "README.md", "a.typ"}
        assert (dest / "README.md").read_bytes() == b"# foo\r\n"


@pytest.mark.asyncio
async def test_remote_sync_nested_entrypoint():
    toml = TYPST_TOML.replace('entrypoint = "a.typ"', 'entrypoint = "src/lib.typ"')
    served = {
        "/pkg/typst.toml": toml.encode(),
        "/pkg/README.md": b"readme",
        "/pkg/src/lib.typ": b"lib",
    }
    with tempfile.TemporaryDirectory() as tmpdir:
        dest = Path(tmpdir)
        meta = PackageMetadata.from_toml(toml)

        async with mock_client(served) as client:
            await sync_package_files(RemoteSource(base_url="https://example.com/pkg/"), meta, dest, client=client)

        assert (dest / "src" / "lib.typ").read_bytes() == b"lib"


@pytest.mark.asyncio
async def test_remote_sync_failure_aborts():
    """A failed fetch stops the sync; later files are never requested."""
    served = {"/pkg/typst.toml": TYPST_TOML.encode(), "/pkg/a.typ": b"a"}
    requested: list[str] = []
    with tempfile.TemporaryDirectory() as tmpdir:
        dest = Path(tmpdir)
        meta = PackageMetadata.from_toml(TYPST_TOML)

        async with mock_client(served, requested) as client:
            with pytest.raises(TransferError) as exc_info:
                await sync_package_files(RemoteSource(base_url="https://example.com/pkg/"), meta, dest, client=client)

        assert exc_info.value.context["url"] == "https://example.com/pkg/README.md"
        assert requested == ["/pkg/typst.toml", "/pkg/README.md"]
        assert (dest / "typst.toml").exists()
        assert not (dest / "a.typ").exists()


@pytest.mark.asyncio
async def test_remote_sync_requires_client():
    meta = PackageMetadata.from_toml(TYPST_TOML)

    with pytest.raises(TypeError):
        await sync_package_files(RemoteSource(base_url="https://example.com/pkg/"), meta, Path("/unused"))


@pytest.mark.asyncio
async def test_local_sync_keeps_symlink_to_excluded_file():
    """Only the excluded path itself is skipped, not other names for the same file."""
    toml = TYPST_TOML.replace('exclude = ["secret.txt"]', 'exclude = ["a.typ"]')
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "pkg"
        write_package(root, {"typst.toml": toml, "a.typ": "#let a = 1\n"})
        (root / "link.typ").symlink_to(root / "a.typ")
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_path(root / "typst.toml")

        written = await sync_package_files(LocalSource(root_path=root), meta, dest)

        assert "link.typ" in written
        assert "a.typ" not in written
        assert (dest / "link.typ").read_text() == "#let a = 1\n"


@pytest.mark.asyncio
async def test_local_sync_excludes_symlink_by_name():
    toml = TYPST_TOML.replace('exclude = ["secret.txt"]', 'exclude = ["link.typ"]')
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "pkg"
        write_package(root, {"typst.toml": toml, "a.typ": "#let a = 1\n"})
        (root / "link.typ").symlink_to(root / "a.typ")
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_path(root / "typst.toml")

        await sync_package_files(LocalSource(root_path=root), meta, dest)

        assert not (dest / "link.typ").exists()
        assert (dest / "a.typ").exists()


@pytest.mark.asyncio
@pytest.mark.parametrize("file_name", ["../outside.typ", "nested/../../outside.typ"])
async def test_remote_sync_refuses_paths_outside_destination(file_name):
    requested: list[str] = []
    with tempfile.TemporaryDirectory() as tmpdir:
        dest = Path(tmpdir) / "dest"
        dest.mkdir()
        meta = PackageMetadata.from_toml(TYPST_TOML)

        async with mock_client({"/outside.typ": b"escaped"}, requested) as client:
            with pytest.raises(FileSystemError, match="outside"):
                await sync_package_files(
                    RemoteSource(base_url="https://example.com/pkg/"),
                    meta,
                    dest,
                    client=client,
                    include_files=(file_name,),
                )

        assert requested == []
        assert not (Path(tmpdir) / "outside.typ").exists()
