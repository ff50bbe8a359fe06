"""Configuration settings using Pydantic for validation."""

import os
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..errors import ConfigurationError
from ..models import Credentials, DistributionMode, StreamTarget

DEFAULT_SHARD_COUNT = 1

# ${VAR_NAME} or ${VAR_NAME:-default}
MACRO_PATTERN = re.compile(r'\$\{([^}]+)\}')


@dataclass(frozen=True)
class LiteralValue:
    """A configuration value known at validation time."""
    value: str


@dataclass(frozen=True)
class DeferredValue:
    """A configuration value that is only resolved when the job starts."""
    expression: str


ConfigValue = Union[LiteralValue, DeferredValue]


def classify_value(raw: Any) -> ConfigValue:
    """Tag a raw option as literal or deferred (contains a ``${...}`` macro)."""
    if isinstance(raw, str) and MACRO_PATTERN.search(raw):
        return DeferredValue(raw)
    return LiteralValue("" if raw is None else str(raw))


def normalize_distribute(value: Any) -> str:
    """
    Normalize a free-form distribute flag.

    Only a case-insensitive ``"true"`` (or boolean ``True``) yields ``"true"``;
    everything else, including ``None`` and padded text such as ``" true "``,
    yields ``"false"``.
    """
    if value is None:
        return "false"
    return "true" if str(value).lower() == "true" else "false"


class KinesisSinkConfig(BaseModel):
    """Kinesis sink options as configured for a pipeline stage."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    reference_name: str = Field(default="", alias="referenceName", description="Lineage/tracking identifier")
    name: Optional[str] = Field(default=None, description="Kinesis stream to write to; created if missing")
    access_id: Optional[str] = Field(default=None, alias="accessID", description="AWS access key id")
    access_key: Optional[str] = Field(default=None, alias="accessKey", description="AWS secret access key")
    shard_count: Optional[Union[int, str]] = Field(default=None, alias="shardCount", description="Desired shard count")
    distribute: Optional[Union[bool, str]] = Field(default=None, description="'true' spreads records over all shards")
    body_field: Optional[str] = Field(default=None, alias="bodyField", description="Declared for compatibility; unused")

    reshard: bool = Field(default=True, description="Reshard an existing stream whose shard count differs")
    stream_ready_timeout_seconds: float = Field(default=300.0, gt=0, description="Max wait for stream to become ACTIVE")
    quote_fields: bool = Field(default=False, description="Quote values containing the delimiter")

    def value_of(self, field_name: str) -> ConfigValue:
        return classify_value(getattr(self, field_name))

    def contains_macro(self, field_name: str) -> bool:
        return isinstance(self.value_of(field_name), DeferredValue)

    def get_shard_count(self) -> int:
        """Configured shard count, or the default of 1 when unset."""
        if self.shard_count is None:
            return DEFAULT_SHARD_COUNT
        if self.contains_macro("shard_count"):
            raise ConfigurationError(message=f"shardCount has not been resolved: {self.shard_count}")
        try:
            return int(self.shard_count)
        except (TypeError, ValueError):
            raise ConfigurationError(message=f"shardCount must be an integer, got {self.shard_count!r}")

    def get_distribute(self) -> str:
        return normalize_distribute(self.distribute)

    def to_stream_target(self) -> StreamTarget:
        """Build the immutable stream target for a resolved configuration."""
        for field_name in ("name", "shard_count"):
            if self.contains_macro(field_name):
                raise ConfigurationError(message=f"Option '{field_name}' has not been resolved")
        return StreamTarget(
            name=self.name or "",
            shard_count=self.get_shard_count(),
            mode=DistributionMode.from_distribute(self.get_distribute()),
        )

    def get_credentials(self) -> Credentials:
        for field_name in ("access_id", "access_key"):
            if self.contains_macro(field_name):
                raise ConfigurationError(message=f"Option '{field_name}' has not been resolved")
        return Credentials(access_key_id=self.access_id or "", secret_access_key=self.access_key or "")


class AWSConfig(BaseModel):
    """AWS client configuration."""
    region: str = Field(default="us-east-1", description="AWS region")
    endpoint_url: Optional[str] = Field(default=None, description="LocalStack endpoint URL")
    connect_timeout: int = Field(default=10, description="Connect timeout in seconds")
    read_timeout: int = Field(default=30, description="Read timeout in seconds")
    max_pool_connections: int = Field(default=10, description="HTTP connection pool size")


class RetryConfig(BaseModel):
    """Retry configuration for record writes."""
    max_attempts: int = Field(default=5, ge=1, description="Maximum attempts per record")
    initial_backoff_seconds: float = Field(default=0.1, ge=0, description="Initial backoff delay")
    max_backoff_seconds: float = Field(default=5.0, ge=0, description="Maximum backoff delay")
    backoff_multiplier: float = Field(default=2.0, ge=1, description="Backoff multiplier")
    jitter: bool = Field(default=True, description="Add jitter to backoff")


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")
    output: str = Field(default="stdout", description="Log output destination")

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v.lower() not in ['json', 'text']:
            raise ValueError("Log format must be 'json' or 'text'")
        return v.lower()


class JobConfig(BaseModel):
    """Per-task failure policy."""
    skip_failed_records: bool = Field(default=False, description="Count and skip records that fail to write")


class SinkSettings(BaseSettings):
    """Main sink settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    service_name: str = Field(default="kinesis-sink", description="Service name")

    kinesis: KinesisSinkConfig = Field(default_factory=KinesisSinkConfig)
    aws: AWSConfig = Field(default_factory=AWSConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    job: JobConfig = Field(default_factory=JobConfig)


def substitute_env_vars(obj: Any, environ: Optional[Mapping[str, str]] = None) -> Any:
    """
    Recursively substitute environment variables in configuration objects.

    Supports syntax:
    - ${VAR_NAME} - Required variable (raises error if not found)
    - ${VAR_NAME:-default} - Optional variable with default value

    Args:
        obj: Configuration object (dict, list, string, or other)
        environ: Variables to substitute from (defaults to os.environ)

    Returns:
        Object with environment variables substituted

    Raises:
        ValueError: If required environment variable is not found
    """
    env = os.environ if environ is None else environ

    if isinstance(obj, dict):
        return {key: substitute_env_vars(value, env) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [substitute_env_vars(item, env) for item in obj]
    elif isinstance(obj, str):
        def replace_env_var(match):
            var_expr = match.group(1)

            if ':-' in var_expr:
                var_name, default_value = var_expr.split(':-', 1)
                return env.get(var_name.strip(), default_value)

            var_name = var_expr.strip()
            value = env.get(var_name)
            if value is None:
                raise ValueError(f"Required environment variable '{var_name}' is not set")
            return value

        return MACRO_PATTERN.sub(replace_env_var, obj)
    else:
        return obj


def resolve_config(config: KinesisSinkConfig, environ: Optional[Mapping[str, str]] = None) -> KinesisSinkConfig:
    """
    Resolve deferred Kinesis options at job start.

    Returns a copy of ``config`` holding only literal values.

    Raises:
        ConfigurationError: If a macro references an unset variable
    """
    try:
        resolved = substitute_env_vars(config.model_dump(), environ)
    except ValueError as e:
        raise ConfigurationError(message=str(e)) from e
    return KinesisSinkConfig(**resolved)


def resolve_macros(settings: SinkSettings, environ: Optional[Mapping[str, str]] = None) -> SinkSettings:
    """Copy of ``settings`` with its ``kinesis`` section resolved."""
    return settings.model_copy(update={"kinesis": resolve_config(settings.kinesis, environ)})


def load_settings(config_file: Optional[str] = None) -> SinkSettings:
    """
    Load settings from config file and environment variables.

    Macros in every section except ``kinesis`` are substituted immediately.
    Kinesis options keep their ``${...}`` macros so validation can tell
    deferred values apart; they are resolved by ``resolve_macros``.

    Args:
        config_file: Path to YAML configuration file

    Returns:
        SinkSettings: Validated configuration object

    Raises:
        ConfigurationError: If required environment variables are missing
        FileNotFoundError: If config file doesn't exist
    """
    if config_file and os.path.exists(config_file):
        import yaml

        with open(config_file, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        kinesis_section = raw_config.pop('kinesis', None)
        try:
            config_data = substitute_env_vars(raw_config)
        except ValueError as e:
            raise ConfigurationError(message=str(e)) from e
        if kinesis_section is not None:
            config_data['kinesis'] = kinesis_section

        return SinkSettings(**config_data)

    elif config_file:
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    return SinkSettings()
