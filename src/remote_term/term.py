"""Refresh orchestrator for one remote term.

A :class:`RemoteTerm` owns the cached value and a single background worker
task. The worker runs refresh cycles one at a time::

    current_version -> (skip if unchanged) -> download -> gunzip -> deserialize -> store

Triggers that arrive while a cycle is running are coalesced into at most one
follow-up cycle. Reads go straight to the store and never wait for the worker.
A failed cycle leaves the cached value and last known version untouched.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Tuple

from .codec import maybe_gunzip
from .config import TermOptions
from .errors import ConfigError, DecodeError
from .fetchers import build_fetcher
from .fetchers.base import Fetcher
from .models import (
    CachedTerm,
    ConditionalStatus,
    CycleEvent,
    CycleOutcome,
    RetryAction,
    Version,
)
from .store import LocalSlot, TermRegistry, TermStore

logger = logging.getLogger(__name__)

Deserializer = Callable[[Any], Any]
CycleListener = Callable[[CycleEvent], None]


def identity(payload: Any) -> Any:
    """Default deserializer: store the raw payload as-is."""
    return payload


class RemoteTerm:
    """Keep a remote blob cached in-process and refresh it in the background.

    Attributes:
        name: Logical name used in logs, events and the registry
        fetcher: Source of the term
        refresh_interval: Seconds between cycles, or None for on-demand only
        lazy_init: Populate in the background instead of during ``start()``
        auto_decompress: Transparently gunzip payloads with the gzip magic prefix
    """

    def __init__(
        self,
        name: str,
        fetcher: Fetcher,
        fetcher_options: Any = None,
        *,
        refresh_interval: Optional[float] = None,
        lazy_init: bool = False,
        auto_decompress: bool = False,
        deserialize: Optional[Deserializer] = None,
        store: Optional[TermStore] = None,
        listeners: Iterable[CycleListener] = (),
        registry: Optional[TermRegistry] = None,
    ):
        """Initialize the term. Nothing is fetched until ``start()``/``update()``.

        Args:
            name: Logical name of the term
            fetcher: Fetcher implementation
            fetcher_options: Options passed to ``fetcher.init``
            refresh_interval: Seconds between cycles; None disables periodic refresh
            lazy_init: Don't wait for the first cycle in ``start()``
            auto_decompress: Gunzip payloads that start with the gzip magic bytes
            deserialize: Turns the downloaded payload into the cached value;
                exceptions count as decode failures
            store: Where the cached term lives (default: process-local slot)
            listeners: Callables receiving one CycleEvent per cycle
            registry: Registry to join on ``start()`` and leave on ``stop()``

        Raises:
            ConfigError: If the options are invalid
        """
        if not name:
            raise ConfigError("RemoteTerm requires a name")
        if refresh_interval is not None and refresh_interval <= 0:
            raise ConfigError(f"refresh_interval must be positive, got {refresh_interval}")

        self.name = name
        self.fetcher = fetcher
        self.refresh_interval = refresh_interval
        self.lazy_init = lazy_init
        self.auto_decompress = auto_decompress

        self._deserialize = deserialize or identity
        self._store = store or LocalSlot()
        self._listeners = list(listeners)
        self._registry = registry

        self._fetcher_state = fetcher.init(fetcher_options)
        fetcher.bind_scheduler(self.schedule_update)

        self._term: Optional[CachedTerm] = None
        self._wakeup = asyncio.Event()
        self._served = asyncio.Condition()
        self._requested = 0
        self._completed = 0
        self._worker: Optional[asyncio.Task] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_cycle = False
        self._attempting: Optional[Version] = None
        self._self_scheduled = False

    @classmethod
    def from_options(cls, options: TermOptions, **kwargs: Any) -> "RemoteTerm":
        """Build a term from validated TermOptions.

        Extra keyword arguments (deserialize, store, listeners, registry) are
        passed to the constructor.
        """
        fetcher, fetcher_options = build_fetcher(options)
        return cls(
            options.name,
            fetcher,
            fetcher_options,
            refresh_interval=options.refresh_interval,
            lazy_init=options.lazy_init,
            auto_decompress=options.auto_decompress,
            **kwargs,
        )

    # Reads

    def get(self, default: Any = None) -> Any:
        """Return the cached value, or *default* if nothing was stored yet.

        Never blocks and never triggers a refresh.
        """
        term = self._store.get()
        if term is None:
            return default
        return term.value

    @property
    def cached(self) -> Optional[CachedTerm]:
        """The stored CachedTerm, or None."""
        return self._store.get()

    @property
    def version(self) -> Optional[Version]:
        """Version of the last successfully stored payload."""
        term = self._term
        return term.version if term is not None else None

    @property
    def fetcher_state(self) -> Any:
        return self._fetcher_state

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    # Lifecycle

    async def start(self) -> None:
        """Start the background worker and run (or schedule) the first cycle."""
        if self._registry is not None:
            self._registry.register(self)

        if self.lazy_init:
            self.update()
        else:
            await self.refresh()

    async def stop(self) -> None:
        """Cancel the pending timer and the worker.

        Pending ``refresh()`` callers are released; the cycle they waited for
        will not run.
        """
        self._cancel_timer()

        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

        async with self._served:
            self._completed = self._requested
            self._served.notify_all()

        if self._registry is not None:
            self._registry.unregister(self.name)

    async def __aenter__(self) -> "RemoteTerm":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # Triggers

    def update(self) -> None:
        """Request a refresh cycle without waiting for it.

        Must be called from the event loop thread.
        """
        self._requested += 1
        self._wakeup.set()
        self._ensure_worker()

    async def refresh(self) -> None:
        """Request a refresh cycle and wait until one covering it completes."""
        self.update()
        target = self._requested
        async with self._served:
            await self._served.wait_for(lambda: self._completed >= target)

    def schedule_update(self, delay: float) -> None:
        """Run a refresh cycle after *delay* seconds.

        Only one timer is pending at a time; scheduling replaces it. When
        called by the fetcher during a cycle it supersedes the periodic
        refresh interval for that cycle.
        """
        if self._in_cycle:
            self._self_scheduled = True
        self._arm_timer(delay)

    def _arm_timer(self, delay: float) -> None:
        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self.update)
        logger.debug(f"{self.name} - next refresh in {delay}s")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            loop = asyncio.get_running_loop()
            self._worker = loop.create_task(self._run())

    async def _run(self) -> None:
        """Background worker: one cycle per (coalesced) wakeup."""
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            covered = self._requested

            await self.run_cycle()

            async with self._served:
                self._completed = covered
                self._served.notify_all()

    # Refresh cycle

    async def run_cycle(self) -> CycleEvent:
        """Run one refresh cycle and return its event.

        Errors are logged and reported in the event; they never propagate.
        Callers other than the worker must not run cycles concurrently.
        """
        started = time.monotonic()
        self._in_cycle = True
        self._self_scheduled = False
        try:
            outcome, version = await self._refresh_term()
            error = None
        except Exception as e:
            outcome = CycleOutcome.FAILED
            version = self._attempting
            error = f"{type(e).__name__}: {e}"
            logger.error(
                f"{self.name} - failed to update remote term, "
                f"version: {version}, reason: {error}"
            )
        finally:
            self._in_cycle = False

        event = CycleEvent(
            name=self.name,
            outcome=outcome,
            duration=time.monotonic() - started,
            version=version,
            error=error,
        )
        self._emit(event)

        if self.refresh_interval is not None and not self._self_scheduled:
            self._arm_timer(self.refresh_interval)

        return event

    async def _refresh_term(self) -> Tuple[CycleOutcome, Optional[Version]]:
        self._attempting = None
        state = self._fetcher_state

        if self.fetcher.supports_conditional(state):
            result = await self.fetcher.download_if_changed(state, self.version)
            self._attempting = result.version
            if result.state is not None:
                state = result.state
                self._fetcher_state = state
            if result.status == ConditionalStatus.NOT_MODIFIED:
                logger.info(f"{self.name} - up to date")
                return CycleOutcome.NOT_UPDATED, result.version
            version = await self._load(result.version, state, result.body)
            return CycleOutcome.UPDATED, version

        version, state = await self.fetcher.current_version(state)
        self._fetcher_state = state
        self._attempting = version

        if version == self.version:
            logger.info(f"{self.name} - up to date")
            return CycleOutcome.NOT_UPDATED, version

        version = await self._load(version, state)
        return CycleOutcome.UPDATED, version

    async def _load(self, version: Version, state: Any, payload: Any = None) -> Version:
        """Download (unless given), decode and store, falling back on decode errors."""
        while True:
            self._attempting = version
            try:
                if payload is None:
                    payload = await self.fetcher.download(state, version)
                value = self._decode(payload)
            except DecodeError as e:
                logger.error(f"{self.name} - failed to decode version {version}: {e}")
                instruction = await self.fetcher.on_decode_error(state)
                if instruction.action != RetryAction.RETRY:
                    raise
                logger.info(f"{self.name} - falling back to version {instruction.version}")
                version, state, payload = instruction.version, instruction.state, None
                self._fetcher_state = state
                continue

            self._put(value, version)
            return version

    def _decode(self, payload: Any) -> Any:
        if self.auto_decompress and isinstance(payload, (bytes, bytearray)):
            payload = maybe_gunzip(bytes(payload))

        try:
            return self._deserialize(payload)
        except DecodeError:
            raise
        except Exception as e:
            raise DecodeError(f"deserialize failed: {e!r}") from e

    def _put(self, value: Any, version: Version) -> None:
        term = CachedTerm(value=value, version=version, updated_at=datetime.now(timezone.utc))
        self._store.put(term)
        self._term = term
        logger.info(f"{self.name} - stored version {version}")

    def _emit(self, event: CycleEvent) -> None:
        logger.debug(
            f"{event.name} - cycle {event.outcome.value} in {event.duration:.3f}s"
        )
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"{self.name} - cycle listener {listener!r} failed")
