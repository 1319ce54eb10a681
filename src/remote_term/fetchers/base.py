"""Fetcher interface implemented by every remote source."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Tuple

from ..errors import NotSupportedError
from ..models import ConditionalResult, RetryInstruction, Version

ScheduleUpdate = Callable[[float], None]


class Fetcher(ABC):
    """A source of a remote term.

    A fetcher is stateless between calls: its configuration and connection
    data live in an immutable *state* value created by :meth:`init`. The
    orchestrator owns that value, passes it into every call and replaces it
    with whatever the call returns.

    Failures are raised as :class:`~remote_term.errors.FetchError`
    subclasses, never returned as default values.
    """

    def __init__(self) -> None:
        self._schedule_update: Optional[ScheduleUpdate] = None

    def bind_scheduler(self, schedule_update: ScheduleUpdate) -> None:
        """Give the fetcher a way to schedule the owner's next refresh.

        Args:
            schedule_update: Callable taking a delay in seconds
        """
        self._schedule_update = schedule_update

    def schedule_update(self, delay: float) -> bool:
        """Ask the owning orchestrator to refresh after *delay* seconds.

        Returns:
            True if a scheduler was bound
        """
        if self._schedule_update is None:
            return False
        self._schedule_update(delay)
        return True

    @abstractmethod
    def init(self, options: Any) -> Any:
        """Validate options and build the initial state.

        Raises:
            ConfigError: If the options are invalid
        """

    @abstractmethod
    async def current_version(self, state: Any) -> Tuple[Version, Any]:
        """Return the latest version at the source and the updated state."""

    @abstractmethod
    async def download(self, state: Any, version: Optional[Version]) -> bytes:
        """Download the term at *version* (latest when None)."""

    async def previous_version(self, state: Any) -> Any:
        """Return a state pointing at the version before the current one.

        Raises:
            NoPreviousVersionError: If the current version is the oldest
            NotSupportedError: If the source has no version history
        """
        raise NotSupportedError(f"{type(self).__name__} does not support previous versions")

    def supports_conditional(self, state: Any) -> bool:
        """Whether :meth:`download_if_changed` should be used for *state*."""
        return False

    async def download_if_changed(
        self, state: Any, version: Optional[Version]
    ) -> ConditionalResult:
        """Download the term only if it differs from *version*."""
        raise NotSupportedError(f"{type(self).__name__} does not support conditional downloads")

    async def on_decode_error(self, state: Any) -> RetryInstruction:
        """Decide what to do after the payload for *state* failed to decode.

        The default accepts the failure.
        """
        return RetryInstruction.proceed()
