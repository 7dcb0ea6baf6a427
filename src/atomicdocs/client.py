from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Union

import httpx

from atomicdocs.config import AtomicDocsSettings
from atomicdocs.domain.models import RouteBatch
from atomicdocs.errors import RegistrationError, ServiceUnavailableError
from atomicdocs.normalize import is_docs_path
from atomicdocs.retry import RetryPolicy
from atomicdocs.service.process import DocsService

logger = logging.getLogger(__name__)

BatchOrFactory = Union[RouteBatch, Callable[[], RouteBatch]]


class RegistrationHandle:
    """Cancellation / completion handle for one background registration."""

    def __init__(self) -> None:
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.succeeded = False
        self.attempts = 0
        self.last_error: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self) -> None:
        self._cancel.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)


class RegistrationClient:
    """
    Ships RouteBatches to the docs service.

    `send` is one synchronous request. `submit` is fire-and-forget: it runs on
    a daemon thread, waits for the service to come up, retries transport
    failures on the configured backoff schedule and only ever logs failures.
    """

    def __init__(
        self,
        settings: Optional[AtomicDocsSettings] = None,
        service: Optional[DocsService] = None,
        transport: Optional[httpx.BaseTransport] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.settings = settings or AtomicDocsSettings()
        self.service = service or DocsService(self.settings, transport=transport)
        self._transport = transport
        self.policy = policy or RetryPolicy.for_registration(self.settings)
        self._handles: list[RegistrationHandle] = []
        self._handles_lock = threading.Lock()

    @property
    def register_url(self) -> str:
        return self.settings.url_for(self.settings.register_path)

    def send(self, batch: RouteBatch) -> None:
        batch = self._without_docs_routes(batch)
        timeout = httpx.Timeout(self.settings.read_timeout, connect=self.settings.connect_timeout)
        try:
            with httpx.Client(transport=self._transport, timeout=timeout) as client:
                resp = client.post(self.register_url, json=batch.to_payload())
        except httpx.TransportError as e:
            raise RegistrationError(f"could not reach {self.register_url}: {e}") from e
        if resp.status_code >= 400:
            raise RegistrationError(f"{self.register_url} answered {resp.status_code}")

    def _without_docs_routes(self, batch: RouteBatch) -> RouteBatch:
        prefix = self.settings.docs_prefix
        kept = [r for r in batch.routes if not is_docs_path(r.path, prefix)]
        if len(kept) == len(batch.routes):
            return batch
        logger.debug("AtomicDocs: dropped %s routes under %s", len(batch.routes) - len(kept), prefix)
        return batch.model_copy(update={"routes": kept})

    def submit(self, batch: BatchOrFactory) -> RegistrationHandle:
        handle = RegistrationHandle()
        thread = threading.Thread(
            target=self._run,
            args=(batch, handle),
            name="atomicdocs-register",
            daemon=True,
        )
        handle._thread = thread
        with self._handles_lock:
            self._handles = [h for h in self._handles if not h.done]
            self._handles.append(handle)
        thread.start()
        return handle

    def close(self) -> None:
        with self._handles_lock:
            handles, self._handles = self._handles, []
        for h in handles:
            h.cancel()

    def _run(self, batch: BatchOrFactory, handle: RegistrationHandle) -> None:
        try:
            self._register(batch, handle)
        except Exception:
            # nothing escapes the background thread
            logger.exception("AtomicDocs: registration failed unexpectedly")
        finally:
            handle._done.set()

    def _register(self, batch: BatchOrFactory, handle: RegistrationHandle) -> None:
        for attempt in self.policy.attempts():
            if handle.cancelled:
                return
            handle.attempts = attempt
            try:
                if not self.service.wait_ready(cancel=handle._cancel):
                    return
                resolved = batch() if callable(batch) else batch
                self.send(resolved)
            except (ServiceUnavailableError, RegistrationError) as e:
                handle.last_error = str(e)
                delay = self.policy.delay_for(attempt)
                logger.warning(
                    "AtomicDocs: registration attempt %s failed (%s), retrying in %.2fs",
                    attempt,
                    e,
                    delay,
                )
                if handle._cancel.wait(delay):
                    return
                continue

            handle.succeeded = True
            count = len(resolved.routes)
            if count:
                logger.info("AtomicDocs: Registered %s routes (app port %s)", count, resolved.port)
            else:
                logger.warning(
                    "AtomicDocs: No routes found. Make sure routes are defined before registering"
                )
            return

        logger.error("AtomicDocs: giving up on registration after %s attempts", handle.attempts)
