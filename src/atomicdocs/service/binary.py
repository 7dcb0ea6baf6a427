from __future__ import annotations

import platform
from pathlib import Path
from typing import Optional

from atomicdocs.config import AtomicDocsSettings
from atomicdocs.errors import UnsupportedPlatformError

_SYSTEMS = {
    "windows": "win",
    "win32": "win",
    "darwin": "darwin",
    "linux": "linux",
}

_MACHINES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "arm64": "arm64",
    "aarch64": "arm64",
}

PACKAGE_BIN_DIR = Path(__file__).resolve().parent.parent / "bin"


def platform_key(system: Optional[str] = None, machine: Optional[str] = None) -> tuple[str, str]:
    system = system if system is not None else platform.system()
    machine = machine if machine is not None else platform.machine()
    mapped_system = _SYSTEMS.get(system.lower())
    mapped_machine = _MACHINES.get(machine.lower())
    if not mapped_system or not mapped_machine:
        raise UnsupportedPlatformError(system, machine)
    return mapped_system, mapped_machine


def resolve_binary_name(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """atomicdocs-<os>-<arch>[.exe] for the given (or current) platform."""
    os_key, arch_key = platform_key(system, machine)
    ext = ".exe" if os_key == "win" else ""
    return f"atomicdocs-{os_key}-{arch_key}{ext}"


def resolve_binary_path(
    settings: AtomicDocsSettings,
    system: Optional[str] = None,
    machine: Optional[str] = None,
) -> Path:
    if settings.binary_path is not None:
        return Path(settings.binary_path).expanduser()
    bin_dir = Path(settings.bin_dir).expanduser() if settings.bin_dir is not None else PACKAGE_BIN_DIR
    return bin_dir / resolve_binary_name(system, machine)
