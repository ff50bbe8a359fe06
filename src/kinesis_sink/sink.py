"""Kinesis batch sink: pipeline lifecycle hooks and the per-task record writer."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .clients.kinesis_client import StreamWriter
from .commit import CommitPolicy, NoOpCommitPolicy
from .config.aws_config import AWSClientManager
from .config.settings import AWSConfig, KinesisSinkConfig, RetryConfig, resolve_config
from .distributor import ShardDistributor
from .errors import KinesisSinkError
from .models import Record
from .serializer import RecordSerializer
from .validation import (
    ACCESS_ID,
    ACCESS_KEY,
    DISTRIBUTE,
    NAME,
    SHARD_COUNT,
    FailureCollector,
    ValidationFailure,
    validate_config,
)

logger = logging.getLogger(__name__)

OUTPUT_FORMAT = "kinesis"


@dataclass(frozen=True)
class OutputSpec:
    """Output destination descriptor handed to the batch framework."""
    reference_name: str
    output_format: str
    properties: Dict[str, str] = field(default_factory=dict)


class KinesisRecordWriter:
    """
    Per-task writer: serialize, assign a partition key, put.

    One instance per worker. Records are handled strictly in order and
    each ``process`` call blocks until Kinesis acknowledges the record.
    """

    def __init__(self, serializer: RecordSerializer, distributor: ShardDistributor, stream_writer: StreamWriter):
        self.serializer = serializer
        self.distributor = distributor
        self.stream_writer = stream_writer

    def open(self) -> None:
        """Ensure the target stream is ready for writes."""
        self.stream_writer.initialize()

    def process(self, record: Record) -> str:
        """
        Write one record.

        Returns:
            Id of the shard that stored the record

        Raises:
            WriteError: If the put failed after retries
        """
        line = self.serializer.serialize(record)
        partition_key = self.distributor.next_key()
        return self.stream_writer.write(
            line,
            partition_key,
            explicit_hash_key=self.distributor.hash_key_for(partition_key)
        )


class KinesisSink:
    """Sink that outputs to a specified AWS Kinesis stream."""

    def __init__(self, config: KinesisSinkConfig, commit_policy: Optional[CommitPolicy] = None):
        self.config = config
        self.commit_policy = commit_policy or NoOpCommitPolicy()
        self.serializer = RecordSerializer(quote_fields=config.quote_fields)
        self._prepared = False

    def configure_pipeline(self) -> List[ValidationFailure]:
        """Validate at pipeline configuration time; macros are still unresolved."""
        return validate_config(self.config)

    def prepare_run(self, environ: Optional[Mapping[str, str]] = None) -> OutputSpec:
        """
        Resolve macros, validate and describe the output for this run.

        Args:
            environ: Values for ``${...}`` macros (defaults to os.environ)

        Returns:
            OutputSpec naming the stream and its resolved options

        Raises:
            ConfigurationError: If any option is invalid
        """
        resolved = resolve_config(self.config, environ)

        collector = FailureCollector()
        validate_config(resolved, collector)
        collector.get_or_raise()

        self.config = resolved
        self._prepared = True

        properties = {
            NAME: resolved.name,
            ACCESS_ID: resolved.access_id,
            ACCESS_KEY: resolved.access_key,
            SHARD_COUNT: str(resolved.get_shard_count()),
            DISTRIBUTE: resolved.get_distribute(),
        }
        logger.info(
            f"Prepared Kinesis output reference={resolved.reference_name} stream={resolved.name} "
            f"shard_count={properties[SHARD_COUNT]} distribute={properties[DISTRIBUTE]}"
        )
        return OutputSpec(
            reference_name=resolved.reference_name,
            output_format=OUTPUT_FORMAT,
            properties=properties
        )

    def transform(self, record: Record) -> str:
        return self.serializer.serialize(record)

    def create_writer(
        self,
        aws_config: Optional[AWSConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        cancel_event: Optional[threading.Event] = None,
        kinesis_client=None
    ) -> KinesisRecordWriter:
        """
        Build a record writer for one worker.

        Args:
            aws_config: Client settings, used when no client is given
            retry_config: Backoff policy for record puts
            cancel_event: Set to interrupt retries and provisioning waits
            kinesis_client: Pre-built boto3 Kinesis client

        Raises:
            KinesisSinkError: If prepare_run has not been called
            ConfigurationError: If the shard count is not positive
        """
        if not self._prepared:
            raise KinesisSinkError("prepare_run() must be called before create_writer()")

        target = self.config.to_stream_target()

        if kinesis_client is None:
            client_manager = AWSClientManager(aws_config or AWSConfig(), self.config.get_credentials())
            kinesis_client = client_manager.kinesis_client

        stream_writer = StreamWriter(
            kinesis_client,
            target,
            retry_config=retry_config,
            reshard=self.config.reshard,
            ready_timeout_seconds=self.config.stream_ready_timeout_seconds,
            cancel_event=cancel_event
        )
        distributor = ShardDistributor(target.mode, target.shard_count)
        return KinesisRecordWriter(self.serializer, distributor, stream_writer)
