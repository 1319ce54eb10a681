"""Fetcher that always returns the same data.

Mostly useful in tests and for config-driven stand-ins.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from ..config import StaticOptions, validate_options
from ..models import Version
from .base import Fetcher


@dataclass(frozen=True)
class StaticState:
    data: Any
    version: str = "1"


class StaticFetcher(Fetcher):
    """Serve fixed data at a fixed version."""

    def __init__(self, data: Any = None, version: str = "1"):
        super().__init__()
        self.data = data
        self.version = version

    def init(self, options: Union[StaticOptions, Dict[str, Any], None] = None) -> StaticState:
        if options is None:
            return StaticState(data=self.data, version=self.version)
        opts = validate_options(StaticOptions, options)
        return StaticState(data=opts.data, version=opts.version)

    async def current_version(self, state: StaticState) -> Tuple[str, StaticState]:
        return state.version, state

    async def download(self, state: StaticState, version: Optional[Version]) -> Any:
        return state.data
