"""Data types shared by fetchers and the refresh orchestrator."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Hashable, Optional

# Opaque, comparable identifier: an ETag, a version id, a timestamp, or an
# ObjectVersion. Only equality is used.
Version = Hashable


@dataclass(frozen=True)
class CachedTerm:
    """The cached value together with the version it was built from.

    Replaced wholesale on every successful refresh cycle; never mutated.

    Attributes:
        value: Deserialized payload
        version: Version the payload was downloaded at
        updated_at: When the value was stored
    """

    value: Any
    version: Version
    updated_at: datetime


@dataclass(frozen=True)
class ObjectVersion:
    """Version of an object in an S3-style store.

    Attributes:
        etag: Normalized ETag (no surrounding quotes)
        version_id: Store version id, or None for unversioned objects
    """

    etag: Optional[str]
    version_id: Optional[str] = None

    def __str__(self) -> str:
        if self.version_id:
            return f"{self.etag}@{self.version_id}"
        return f"{self.etag}"


@dataclass(frozen=True)
class ObjectVersionEntry:
    """One entry of a version listing for a key."""

    key: str
    version_id: Optional[str]
    etag: Optional[str]
    is_latest: bool
    last_modified: Optional[datetime]

    @property
    def version(self) -> ObjectVersion:
        return ObjectVersion(etag=self.etag, version_id=self.version_id)


class ConditionalStatus(str, Enum):
    """Outcome of a conditional download."""

    UPDATED = "updated"
    NOT_MODIFIED = "not_modified"


@dataclass(frozen=True)
class ConditionalResult:
    """Result of ``download_if_changed``.

    Errors are raised, so only the two success states are represented.
    ``state``, when set, is the fetcher state resolved to ``version`` and
    replaces the state the orchestrator holds.
    """

    status: ConditionalStatus
    version: Version
    body: Optional[bytes] = None
    state: Any = None

    @classmethod
    def updated(cls, body: bytes, version: Version, state: Any = None) -> "ConditionalResult":
        return cls(status=ConditionalStatus.UPDATED, version=version, body=body, state=state)

    @classmethod
    def not_modified(cls, version: Version, state: Any = None) -> "ConditionalResult":
        return cls(status=ConditionalStatus.NOT_MODIFIED, version=version, state=state)


class RetryAction(str, Enum):
    """What the orchestrator should do after a payload failed to decode."""

    RETRY = "retry"
    CONTINUE = "continue"


@dataclass(frozen=True)
class RetryInstruction:
    """Instruction returned by a fetcher's decode-failure policy.

    ``RETRY`` restarts the download against ``version`` using ``state``;
    ``CONTINUE`` accepts the failure.
    """

    action: RetryAction
    version: Optional[Version] = None
    state: Any = None

    @classmethod
    def retry(cls, version: Version, state: Any) -> "RetryInstruction":
        return cls(action=RetryAction.RETRY, version=version, state=state)

    @classmethod
    def proceed(cls) -> "RetryInstruction":
        return cls(action=RetryAction.CONTINUE)


class CycleOutcome(str, Enum):
    """Outcome of one refresh cycle."""

    UPDATED = "updated"
    NOT_UPDATED = "not_updated"
    FAILED = "failed"


@dataclass(frozen=True)
class CycleEvent:
    """Timing and outcome of one refresh cycle.

    Attributes:
        name: Logical name of the term
        outcome: updated / not_updated / failed
        duration: Wall time of the cycle in seconds
        version: Version stored (updated), kept (not_updated) or attempted (failed)
        error: Failure reason for failed cycles
    """

    name: str
    outcome: CycleOutcome
    duration: float
    version: Optional[Version] = None
    error: Optional[str] = None
