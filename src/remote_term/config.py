"""Configuration using pydantic-settings and validated option models.

Process-wide defaults come from environment variables (or a ``.env`` file).
Per-term options are pydantic models, either built in code or loaded from a
TOML file with :func:`load_term_options`.
"""

import tomllib
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


class Settings(BaseSettings):
    """Process-wide remote term configuration."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    REMOTE_TERM_LOG_LEVEL: str = "INFO"

    # S3-compatible endpoint (R2, MinIO, ...). Empty means AWS.
    REMOTE_TERM_S3_ENDPOINT_URL: str = ""

    # Seconds
    REMOTE_TERM_HTTP_TIMEOUT: float = 30.0
    REMOTE_TERM_MIN_REFRESH_INTERVAL: float = 300.0


settings = Settings()


class FailoverBucket(BaseModel):
    """A failover bucket. Its key layout must match the primary bucket."""

    bucket: str = Field(..., min_length=1)
    region: str = Field(..., min_length=1)


class S3Options(BaseModel):
    """Options for the S3 fetcher."""

    bucket: str = Field(..., min_length=1, description="Bucket holding the term")
    key: str = Field(..., min_length=1, description="Object key of the term")
    region: str = Field(..., min_length=1, description="Region of the primary bucket")
    failover_regions: List[str] = Field(default_factory=list)
    failover_buckets: List[FailoverBucket] = Field(default_factory=list)
    version_id: Optional[str] = Field(None, description="Pin the term to this version")
    compression: Optional[Literal["gzip"]] = None
    version_fallback: bool = Field(
        False, description="Fall back to older versions when a payload fails to decode"
    )
    conditional: bool = Field(False, description="Use If-None-Match downloads")
    endpoint_url: Optional[str] = None


class HttpOptions(BaseModel):
    """Options for the HTTP fetcher."""

    url: str
    http_cache: bool = Field(
        False, description="Schedule the next refresh from Cache-Control headers"
    )
    min_refresh_interval: float = Field(
        default_factory=lambda: settings.REMOTE_TERM_MIN_REFRESH_INTERVAL, gt=0
    )
    conditional: bool = Field(False, description="Use If-None-Match downloads")
    timeout: float = Field(default_factory=lambda: settings.REMOTE_TERM_HTTP_TIMEOUT, gt=0)
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def _check_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL, expected http(s): {value}")
        return value


class StaticOptions(BaseModel):
    """Options for the static fetcher."""

    data: Union[bytes, str]
    version: str = "1"


class TermOptions(BaseModel):
    """Options for one remote term, as loaded from a TOML file."""

    name: str = Field(..., min_length=1)
    source: Literal["s3", "http", "static"] = "s3"
    refresh_interval: Optional[float] = Field(None, gt=0)
    lazy_init: bool = False
    auto_decompress: bool = False
    s3: Optional[S3Options] = None
    http: Optional[HttpOptions] = None
    static: Optional[StaticOptions] = None

    @model_validator(mode="after")
    def _check_source_table(self) -> "TermOptions":
        if getattr(self, self.source) is None:
            raise ValueError(f"source is '{self.source}' but no [{self.source}] table was given")
        return self

    @property
    def fetcher_options(self) -> BaseModel:
        """Options for the selected source."""
        return getattr(self, self.source)


OptionsT = TypeVar("OptionsT", bound=BaseModel)


def validate_options(model: Type[OptionsT], options: Union[OptionsT, Dict[str, Any]]) -> OptionsT:
    """Validate *options* against *model*.

    Args:
        model: Option model class
        options: Model instance or mapping of raw values

    Returns:
        Validated model instance

    Raises:
        ConfigError: If validation fails
    """
    if isinstance(options, model):
        return options
    if isinstance(options, BaseModel):
        options = options.model_dump()
    try:
        return model.model_validate(options)
    except ValidationError as e:
        raise ConfigError(f"Invalid {model.__name__}: {e}") from e


def load_term_options(path: Path) -> TermOptions:
    """Load term options from a TOML file.

    The file has a ``[term]`` table and one of ``[s3]``, ``[http]`` or
    ``[static]``.

    Args:
        path: Path to the TOML file

    Returns:
        Validated TermOptions

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the file is not valid TOML or fails validation
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e

    raw = dict(data.get("term", {}))
    for source in ("s3", "http", "static"):
        if source in data:
            raw[source] = data[source]

    return validate_options(TermOptions, raw)
