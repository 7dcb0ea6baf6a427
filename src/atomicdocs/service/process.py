from __future__ import annotations

import logging
import subprocess
import threading
import time
from typing import Any, Callable, Optional

import httpx

from atomicdocs.config import AtomicDocsSettings
from atomicdocs.domain.models import ServiceState
from atomicdocs.errors import ServiceUnavailableError, SpawnError, UnsupportedPlatformError
from atomicdocs.retry import RetryPolicy
from atomicdocs.service.binary import resolve_binary_path

logger = logging.getLogger(__name__)


class DocsService:
    """
    Handle on the external docs-generation process.

    Lifecycle: NOT_STARTED -> STARTING (spawn issued) -> READY (probe answered).
    A failed spawn parks the handle in UNAVAILABLE; the probe still runs, so a
    service started by someone else is picked up. When the spawned process
    exits the handle resets to NOT_STARTED but is never spawned again.

    Usage:
        with DocsService(settings) as service:
            service.wait_ready()
    """

    def __init__(
        self,
        settings: Optional[AtomicDocsSettings] = None,
        popen: Callable[..., Any] = subprocess.Popen,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or AtomicDocsSettings()
        self._popen = popen
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.RLock()
        self._process: Any = None
        self._state = ServiceState.NOT_STARTED
        self._spawn_attempted = False

    # ----------------------------
    # State
    # ----------------------------

    @property
    def state(self) -> ServiceState:
        with self._lock:
            self._refresh_locked()
            return self._state

    @property
    def process(self) -> Any:
        return self._process

    def _refresh_locked(self) -> None:
        if self._process is None:
            return
        code = self._process.poll()
        if code is None:
            return
        if code != 0:
            logger.error("AtomicDocs: docs service exited with code %s", code)
        self._process = None
        self._state = ServiceState.NOT_STARTED

    # ----------------------------
    # Spawn
    # ----------------------------

    def start(self) -> ServiceState:
        """
        Spawn the service binary at most once per handle.

        The probe runs outside the lock; only the spawn decision is serialized.
        After the one spawn attempt, later calls just probe.
        """
        with self._lock:
            self._refresh_locked()
            if self._process is not None or self._state is ServiceState.READY:
                return self._state

        if self.probe():
            with self._lock:
                if self._state is not ServiceState.READY and not self._spawn_attempted:
                    logger.info("AtomicDocs: docs service already running at %s", self.settings.service_url)
                self._state = ServiceState.READY
                return self._state

        with self._lock:
            self._refresh_locked()
            if self._spawn_attempted or self._process is not None or self._state is ServiceState.READY:
                return self._state

            if not self.settings.spawn:
                logger.debug("AtomicDocs: spawning disabled, waiting for an external service")
                self._state = ServiceState.STARTING
                return self._state

            self._spawn_attempted = True
            try:
                self._process = self._spawn()
            except (SpawnError, UnsupportedPlatformError) as e:
                logger.error("AtomicDocs: %s", e)
                self._state = ServiceState.UNAVAILABLE
                return self._state

            logger.info("AtomicDocs: started docs service (pid %s)", getattr(self._process, "pid", "?"))
            self._state = ServiceState.STARTING
            return self._state

    def _spawn(self) -> Any:
        path = resolve_binary_path(self.settings)
        if not path.is_file():
            raise SpawnError(f"Binary not found at {path}")
        try:
            return self._popen(
                [str(path)],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise SpawnError(f"Failed to start {path}: {e}") from e

    # ----------------------------
    # Readiness
    # ----------------------------

    def _client(self) -> httpx.Client:
        timeout = httpx.Timeout(self.settings.read_timeout, connect=self.settings.connect_timeout)
        return httpx.Client(transport=self._transport, timeout=timeout)

    def probe(self) -> bool:
        """One readiness request. Any HTTP answer means the service is listening."""
        try:
            with self._client() as client:
                client.get(self.settings.url_for(self.settings.health_path))
        except httpx.TransportError:
            return False
        return True

    def is_ready(self) -> bool:
        if self.state is ServiceState.READY:
            return True
        if self.probe():
            self._mark_ready()
            return True
        return False

    def wait_ready(self, timeout: Optional[float] = None, cancel: Optional[threading.Event] = None) -> bool:
        """
        Poll the health endpoint with exponential backoff until it answers.

        Returns True once ready, False if `cancel` was set while waiting.
        Raises ServiceUnavailableError when `timeout` (default
        settings.ready_timeout) runs out.
        """
        if self.state is ServiceState.READY:
            return True
        self.start()
        if self.state is ServiceState.READY:
            return True

        budget = self.settings.ready_timeout if timeout is None else timeout
        started = self._clock()
        policy = RetryPolicy.for_probe(self.settings)
        for attempt in policy.attempts():
            if self.probe():
                self._mark_ready()
                return True
            waited = self._clock() - started
            remaining = budget - waited
            if remaining <= 0:
                raise ServiceUnavailableError(self.settings.service_url, waited)
            if self._pause(min(policy.delay_for(attempt), remaining), cancel):
                return False
        return False  # pragma: no cover - probe policy is unbounded

    def _pause(self, delay: float, cancel: Optional[threading.Event]) -> bool:
        if cancel is not None:
            return cancel.wait(delay)
        self._sleep(delay)
        return False

    def _mark_ready(self) -> None:
        with self._lock:
            if self._state is not ServiceState.READY:
                logger.debug("AtomicDocs: docs service ready at %s", self.settings.service_url)
            self._state = ServiceState.READY

    # ----------------------------
    # Shutdown
    # ----------------------------

    def shutdown(self, timeout: float = 5.0) -> None:
        with self._lock:
            proc = self._process
            self._process = None
            self._state = ServiceState.NOT_STARTED
        if proc is None:
            return
        if proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("AtomicDocs: docs service did not stop in %.1fs, killing it", timeout)
            proc.kill()
            proc.wait(timeout=timeout)

    def __enter__(self) -> "DocsService":
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.shutdown()
