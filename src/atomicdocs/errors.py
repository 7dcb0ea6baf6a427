from __future__ import annotations


class AtomicDocsError(Exception):
    """Base class for everything raised by atomicdocs."""


class DiscoveryError(AtomicDocsError):
    """The host app's routing internals were not recognized."""


class UnsupportedPlatformError(AtomicDocsError):
    def __init__(self, system: str, machine: str):
        super().__init__(f"Unsupported platform: {system}-{machine}")
        self.system = system
        self.machine = machine


class SpawnError(AtomicDocsError):
    """The docs service binary is missing or could not be started."""


class ServiceUnavailableError(AtomicDocsError):
    def __init__(self, url: str, waited: float):
        super().__init__(f"AtomicDocs service at {url} not ready after {waited:.1f}s")
        self.url = url
        self.waited = waited


class RegistrationError(AtomicDocsError):
    """A single registration request did not reach the docs service or was rejected."""
