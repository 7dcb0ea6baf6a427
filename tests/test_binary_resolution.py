from pathlib import Path

import pytest

from atomicdocs.config import AtomicDocsSettings
from atomicdocs.errors import UnsupportedPlatformError
from atomicdocs.service.binary import PACKAGE_BIN_DIR, resolve_binary_name, resolve_binary_path


@pytest.mark.parametrize(
    "system,machine,expected",
    [
        ("Linux", "x86_64", "atomicdocs-linux-x64"),
        ("Linux", "aarch64", "atomicdocs-linux-arm64"),
        ("Darwin", "arm64", "atomicdocs-darwin-arm64"),
        ("Darwin", "x86_64", "atomicdocs-darwin-x64"),
        ("Windows", "AMD64", "atomicdocs-win-x64.exe"),
    ],
)
def test_resolve_binary_name(system, machine, expected):
    assert resolve_binary_name(system, machine) == expected


def test_unsupported_platform():
    with pytest.raises(UnsupportedPlatformError) as exc:
        resolve_binary_name("SunOS", "sparc")
    assert "SunOS-sparc" in str(exc.value)


def test_default_path_is_inside_package():
    path = resolve_binary_path(AtomicDocsSettings(), "Linux", "x86_64")
    assert path == PACKAGE_BIN_DIR / "atomicdocs-linux-x64"
    assert path.parent.parent.name == "atomicdocs"


def test_bin_dir_override(tmp_path: Path):
    settings = AtomicDocsSettings(bin_dir=tmp_path)
    assert resolve_binary_path(settings, "Darwin", "arm64") == tmp_path / "atomicdocs-darwin-arm64"


def test_explicit_binary_path_wins(tmp_path: Path):
    binary = tmp_path / "custom-docs-server"
    settings = AtomicDocsSettings(binary_path=binary, bin_dir=tmp_path / "ignored")
    assert resolve_binary_path(settings, "SunOS", "sparc") == binary
