"""Configuration validation that reports every problem in one pass."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .config.settings import KinesisSinkConfig, LiteralValue
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Option names as they appear in pipeline configuration
NAME = "name"
BODY_FIELD = "bodyField"
ACCESS_ID = "accessID"
ACCESS_KEY = "accessKey"
DISTRIBUTE = "distribute"
SHARD_COUNT = "shardCount"


@dataclass
class ValidationFailure:
    """A single configuration problem tied to the option that caused it."""
    message: str
    config_property: Optional[str] = None
    corrective_action: Optional[str] = None

    def with_config_property(self, config_property: str) -> "ValidationFailure":
        self.config_property = config_property
        return self

    def __str__(self) -> str:
        if self.config_property:
            return f"{self.config_property}: {self.message}"
        return self.message


class FailureCollector:
    """Accumulates validation failures instead of raising on the first one."""

    def __init__(self):
        self.failures: List[ValidationFailure] = []

    def add_failure(self, message: str, corrective_action: Optional[str] = None) -> ValidationFailure:
        failure = ValidationFailure(message=message, corrective_action=corrective_action)
        self.failures.append(failure)
        return failure

    def get_or_raise(self) -> None:
        """Raise a ConfigurationError carrying all collected failures, if any."""
        if self.failures:
            raise ConfigurationError(self.failures)


def validate_config(
    config: KinesisSinkConfig,
    collector: Optional[FailureCollector] = None
) -> List[ValidationFailure]:
    """
    Validate Kinesis sink options.

    The stream name is always required. Credentials are only checked when
    they are literal values; deferred (macro) credentials are resolved later.
    An absent shard count is fine and defaults to 1.

    Args:
        config: Sink configuration, possibly containing unresolved macros
        collector: Collector to add failures to (a new one if omitted)

    Returns:
        List of failures found by this call; empty when the config is valid
    """
    collector = collector if collector is not None else FailureCollector()
    start = len(collector.failures)

    if not config.name:
        collector.add_failure("Stream name should be non-null, non-empty.").with_config_property(NAME)

    access_id = config.value_of("access_id")
    if isinstance(access_id, LiteralValue) and not access_id.value:
        collector.add_failure("Access Key should be non-null, non-empty.").with_config_property(ACCESS_ID)

    access_key = config.value_of("access_key")
    if isinstance(access_key, LiteralValue) and not access_key.value:
        collector.add_failure("Access Key secret should be non-null, non-empty.").with_config_property(ACCESS_KEY)

    if config.shard_count is not None and not config.contains_macro("shard_count"):
        try:
            shard_count = int(config.shard_count)
        except (TypeError, ValueError):
            shard_count = None
        if shard_count is None or shard_count < 1:
            collector.add_failure(
                f"Shard count must be a positive integer, got '{config.shard_count}'.",
                corrective_action="Set shardCount to 1 or more, or leave it empty for the default of 1."
            ).with_config_property(SHARD_COUNT)

    found = collector.failures[start:]
    if found:
        logger.debug(f"Configuration validation found {len(found)} failures")
    return found
