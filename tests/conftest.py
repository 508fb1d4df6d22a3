"""Shared fixtures for dxt tests."""

import json
import shutil
import tempfile
import zipfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from dxt.config.schemas import InstallerSettings
from dxt.core.installer import ExtensionInstaller

ArchiveFactory = Callable[..., Path]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="dxt_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def manifest_data() -> dict[str, Any]:
    """Minimal valid manifest for an extension named 'acme'."""
    return {
        "dxt_version": "0.1",
        "name": "acme",
        "display_name": "Acme Tools",
        "version": "1.0.0",
        "description": "A test extension",
        "author": {"name": "Test Author", "email": "author@example.com"},
        "server": {
            "type": "node",
            "entry_point": "server/index.js",
            "mcp_config": {
                "command": "node",
                "args": ["${__dirname}/server/index.js"],
                "env": {"LOG_LEVEL": "info"},
            },
        },
        "tools": [{"name": "search", "description": "Search things"}],
        "keywords": ["test"],
        "license": "MIT",
    }


def write_archive(path: Path, files: dict[str, str | bytes]) -> Path:
    """Write a zip archive containing the given members."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return path


@pytest.fixture
def zip_writer() -> Callable[[Path, dict[str, str | bytes]], Path]:
    """Function writing a zip archive from a name -> content mapping."""
    return write_archive


@pytest.fixture
def make_archive(temp_dir: Path, manifest_data: dict[str, Any]) -> ArchiveFactory:
    """Factory building .dxt archives.

    By default the archive holds ``manifest_data`` as manifest.json plus a
    server script; pass ``manifest=None`` to leave the manifest out.
    """
    counter = {"n": 0}

    def factory(
        manifest: dict[str, Any] | str | None = manifest_data,
        files: dict[str, str | bytes] | None = None,
        path: Path | None = None,
    ) -> Path:
        counter["n"] += 1
        members: dict[str, str | bytes] = {"server/index.js": "console.log('hi')\n"}
        if manifest is not None:
            members["manifest.json"] = (
                manifest if isinstance(manifest, str) else json.dumps(manifest)
            )
        members.update(files or {})
        return write_archive(path or temp_dir / "archives" / f"ext{counter['n']}.dxt", members)

    return factory


@pytest.fixture
def settings(temp_dir: Path) -> InstallerSettings:
    """Installer settings rooted in the temporary directory."""
    return InstallerSettings(
        extensions_dir=temp_dir / "extensions",
        temp_root=temp_dir / "tmp",
    )


@pytest.fixture
def installer(settings: InstallerSettings) -> ExtensionInstaller:
    """Installer using isolated temporary roots."""
    return ExtensionInstaller(settings)


@pytest.fixture
def undecodable_name_archive(temp_dir: Path) -> Path:
    """Archive whose member name is flagged as UTF-8 but is not valid UTF-8."""
    path = write_archive(temp_dir / "archives" / "badname.dxt", {"AAname.txt": "x"})
    data = bytearray(path.read_bytes().replace(b"AAname.txt", b"\xff\xfename.txt"))
    # set the UTF-8 filename flag in the local and central headers
    for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
        start = data.find(signature) + flag_offset
        flags = int.from_bytes(data[start : start + 2], "little") | 0x800
        data[start : start + 2] = flags.to_bytes(2, "little")
    path.write_bytes(bytes(data))
    return path
