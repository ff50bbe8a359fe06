"""AWS Kinesis Data Streams writer for single-record puts."""

import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ConnectionClosedError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from ..config.settings import RetryConfig
from ..errors import ConfigurationError, StreamProvisioningError, TransientServiceError, WriteError
from ..models import StreamTarget
from ..utils.retry import RetryCancelled, exponential_backoff, retry_from_config

logger = logging.getLogger(__name__)

# Error codes worth retrying: throttling and temporary service failures
TRANSIENT_ERROR_CODES = frozenset([
    'ProvisionedThroughputExceededException',
    'ThrottlingException',
    'LimitExceededException',
    'KMSThrottlingException',
    'RequestLimitExceeded',
    'InternalFailure',
    'ServiceUnavailable',
    'ServiceUnavailableException',
])

TRANSIENT_CONNECTION_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', 'Unknown')


@dataclass
class WriteStats:
    """Statistics for record writes."""
    records_sent: int = 0
    records_failed: int = 0
    retries: int = 0
    bytes_sent: int = 0
    last_write_time: Optional[float] = None


class StreamWriter:
    """
    Writes serialized records to one Kinesis stream, one put per record.

    ``initialize`` must run once before any write. It creates the stream if
    it is missing and reshards it to the configured shard count. It is safe
    to call from several workers at once: a concurrent create or reshard is
    treated as another worker converging on the same state.

    ``write`` blocks until Kinesis acknowledges the record. Throttling and
    temporary service failures are retried with bounded exponential backoff;
    anything else, or running out of attempts, raises ``WriteError``.
    """

    def __init__(
        self,
        kinesis_client,
        target: StreamTarget,
        retry_config: Optional[RetryConfig] = None,
        reshard: bool = True,
        ready_timeout_seconds: float = 300.0,
        poll_interval_seconds: float = 2.0,
        cancel_event: Optional[threading.Event] = None
    ):
        if target.shard_count < 1:
            raise ConfigurationError(
                message=f"Shard count must be at least 1, got {target.shard_count}"
            )
        if not target.name:
            raise ConfigurationError(message="Stream name must be non-empty")

        self.client = kinesis_client
        self.target = target
        self.retry_config = retry_config or RetryConfig()
        self.reshard = reshard
        self.ready_timeout_seconds = ready_timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.cancel_event = cancel_event or threading.Event()

        self.stats = WriteStats()
        self._initialized = False

        logger.info(
            f"Initialized StreamWriter for stream={target.name}, "
            f"shard_count={target.shard_count}, mode={target.mode.value}"
        )

    @property
    def stream_name(self) -> str:
        return self.target.name

    def initialize(self) -> None:
        """
        Ensure the stream exists, is ACTIVE and has the configured shard count.

        Raises:
            StreamProvisioningError: If the stream cannot be created or resharded
        """
        try:
            summary = self._describe()
            if summary is None:
                self._create_stream()
                summary = self._wait_for_active()
            elif summary['StreamStatus'] != 'ACTIVE':
                summary = self._wait_for_active()

            open_shards = summary.get('OpenShardCount')
            if open_shards != self.target.shard_count:
                if self.reshard:
                    self._reshard(open_shards)
                else:
                    logger.warning(
                        f"Stream {self.stream_name} has {open_shards} open shards, "
                        f"configured {self.target.shard_count}; resharding disabled"
                    )
        except StreamProvisioningError:
            raise
        except (ClientError, BotoCoreError) as e:
            raise StreamProvisioningError(
                f"Failed to provision stream {self.stream_name}: {e}"
            ) from e

        self._initialized = True
        logger.info(f"Stream {self.stream_name} is ready")

    def write(self, line: str, partition_key: str, explicit_hash_key: Optional[str] = None) -> str:
        """
        Put one serialized record on the stream.

        Args:
            line: Serialized record
            partition_key: Kinesis partition key
            explicit_hash_key: Optional hash key overriding the partition key hash

        Returns:
            Id of the shard that stored the record

        Raises:
            WriteError: If the record could not be written
        """
        if not self._initialized:
            raise WriteError("StreamWriter.initialize() must be called before write()")

        data = line.encode('utf-8')

        try:
            response = exponential_backoff(
                lambda: self._put(data, partition_key, explicit_hash_key),
                **retry_from_config(
                    self.retry_config,
                    exceptions=(TransientServiceError,),
                    cancel_event=self.cancel_event,
                    on_retry=self._record_retry
                )
            )
        except TransientServiceError as e:
            self.stats.records_failed += 1
            raise WriteError(
                f"Gave up writing record to {self.stream_name} after "
                f"{self.retry_config.max_attempts} attempts: {e}",
                error_code=e.error_code
            ) from e
        except RetryCancelled as e:
            self.stats.records_failed += 1
            raise WriteError(
                f"Write to {self.stream_name} cancelled while retrying: {e.last_exception}",
                error_code=getattr(e.last_exception, 'error_code', None)
            ) from e
        except WriteError:
            self.stats.records_failed += 1
            raise

        self.stats.records_sent += 1
        self.stats.bytes_sent += len(data)
        self.stats.last_write_time = time.time()

        return response['ShardId']

    def get_stats(self) -> Dict[str, Any]:
        """Get writer statistics."""
        return {'stream': self.stream_name, **asdict(self.stats)}

    def _put(self, data: bytes, partition_key: str, explicit_hash_key: Optional[str]) -> Dict[str, Any]:
        request = {
            'StreamName': self.stream_name,
            'Data': data,
            'PartitionKey': partition_key
        }
        if explicit_hash_key:
            request['ExplicitHashKey'] = explicit_hash_key

        try:
            return self.client.put_record(**request)
        except ClientError as e:
            code = _error_code(e)
            if code in TRANSIENT_ERROR_CODES:
                raise TransientServiceError(f"{code}: {e}", error_code=code) from e
            raise WriteError(f"PutRecord to {self.stream_name} failed: {e}", error_code=code) from e
        except TRANSIENT_CONNECTION_ERRORS as e:
            raise TransientServiceError(str(e), error_code=type(e).__name__) from e
        except BotoCoreError as e:
            raise WriteError(
                f"PutRecord to {self.stream_name} failed: {e}", error_code=type(e).__name__
            ) from e

    def _record_retry(self, attempt: int, error: BaseException) -> None:
        self.stats.retries += 1

    def _describe(self) -> Optional[Dict[str, Any]]:
        """Stream summary, or None if the stream does not exist."""
        try:
            response = self.client.describe_stream_summary(StreamName=self.stream_name)
        except ClientError as e:
            if _error_code(e) == 'ResourceNotFoundException':
                return None
            raise
        return response['StreamDescriptionSummary']

    def _create_stream(self) -> None:
        logger.info(f"Creating stream {self.stream_name} with {self.target.shard_count} shard(s)")
        try:
            self.client.create_stream(
                StreamName=self.stream_name,
                ShardCount=self.target.shard_count
            )
        except ClientError as e:
            if _error_code(e) != 'ResourceInUseException':
                raise
            logger.info(f"Stream {self.stream_name} is already being created elsewhere")

    def _reshard(self, current_shards: Optional[int]) -> None:
        logger.info(
            f"Resharding stream {self.stream_name} from {current_shards} "
            f"to {self.target.shard_count} shards"
        )
        try:
            self.client.update_shard_count(
                StreamName=self.stream_name,
                TargetShardCount=self.target.shard_count,
                ScalingType='UNIFORM_SCALING'
            )
        except ClientError as e:
            if _error_code(e) != 'ResourceInUseException':
                raise
            logger.info(f"Stream {self.stream_name} is already being updated elsewhere")

        summary = self._wait_for_active()
        open_shards = summary.get('OpenShardCount')
        if open_shards != self.target.shard_count:
            raise StreamProvisioningError(
                f"Stream {self.stream_name} has {open_shards} open shards after resharding, "
                f"expected {self.target.shard_count}"
            )

    def _wait_for_active(self) -> Dict[str, Any]:
        """Poll until the stream is ACTIVE, recreating it if it was deleted meanwhile."""
        deadline = time.monotonic() + self.ready_timeout_seconds

        while True:
            summary = self._describe()
            status = summary['StreamStatus'] if summary else 'NOT_FOUND'
            if status == 'ACTIVE':
                return summary
            if summary is None:
                self._create_stream()

            if time.monotonic() >= deadline:
                raise StreamProvisioningError(
                    f"Stream {self.stream_name} not ACTIVE after "
                    f"{self.ready_timeout_seconds}s (status: {status})"
                )

            logger.debug(f"Waiting for stream {self.stream_name}, current status: {status}")
            if self.cancel_event.wait(self.poll_interval_seconds):
                raise StreamProvisioningError(
                    f"Cancelled while waiting for stream {self.stream_name}"
                )
