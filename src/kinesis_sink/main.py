"""Kinesis Sink job runner - writes JSON-lines records to a Kinesis stream."""

import argparse
import json
import logging
import signal
import sys
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Mapping, Optional

from .config.settings import SinkSettings, load_settings
from .errors import ConfigurationError, KinesisSinkError, WriteError
from .models import Record
from .sink import KinesisSink
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class JobStats:
    """Outcome of one worker's run."""
    records_read: int = 0
    records_written: int = 0
    records_failed: int = 0
    cancelled: bool = False
    records_per_shard: Dict[str, int] = field(default_factory=dict)


def read_records(path: str) -> Iterator[Record]:
    """
    Yield records from a JSON-lines file, one object per line.

    ``-`` reads from stdin. Key order in each object is the field order.
    """
    handle = sys.stdin if path == "-" else open(path, 'r', encoding='utf-8')
    try:
        for line_number, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            data = json.loads(line)
            if not isinstance(data, dict):
                raise ValueError(f"Line {line_number}: expected a JSON object, got {type(data).__name__}")
            yield Record.from_dict(data)
    finally:
        if handle is not sys.stdin:
            handle.close()


def run_job(
    settings: SinkSettings,
    records: Iterable[Record],
    cancel_event: Optional[threading.Event] = None,
    kinesis_client=None,
    environ: Optional[Mapping[str, str]] = None
) -> JobStats:
    """
    Run the sink over ``records`` as a single worker.

    Validates the configuration, prepares the output, ensures the stream,
    then writes each record in order. A record that fails to write aborts
    the task unless ``job.skip_failed_records`` is set, in which case it is
    counted and skipped.

    Args:
        settings: Sink settings, Kinesis options possibly holding macros
        records: Records to write
        cancel_event: Set to stop after the record in flight
        kinesis_client: Pre-built boto3 Kinesis client (built from settings if omitted)
        environ: Values for ``${...}`` macros (defaults to os.environ)

    Returns:
        JobStats for the run

    Raises:
        ConfigurationError: If the configuration is invalid
        StreamProvisioningError: If the stream cannot be prepared
        WriteError: If a record fails and failures are not skipped
    """
    sink = KinesisSink(settings.kinesis)
    commit_policy = sink.commit_policy

    failures = sink.configure_pipeline()
    if failures:
        raise ConfigurationError(failures)

    job_context = {'service': settings.service_name}
    commit_policy.setup_job(job_context)

    output = sink.prepare_run(environ)
    writer = sink.create_writer(settings.aws, settings.retry, cancel_event, kinesis_client)
    writer.open()

    task_context = {'service': settings.service_name, 'reference_name': output.reference_name}
    commit_policy.setup_task(task_context)

    stats = JobStats()
    try:
        for record in records:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Cancellation requested, stopping task")
                stats.cancelled = True
                break

            stats.records_read += 1
            try:
                shard_id = writer.process(record)
            except WriteError as e:
                stats.records_failed += 1
                if not settings.job.skip_failed_records:
                    raise
                logger.warning(f"Skipping record {stats.records_read}: {e}")
                continue

            stats.records_written += 1
            stats.records_per_shard[shard_id] = stats.records_per_shard.get(shard_id, 0) + 1
    except Exception:
        commit_policy.abort_task(task_context)
        raise

    if commit_policy.needs_task_commit(task_context):
        commit_policy.commit_task(task_context)

    logger.info(
        f"Task finished: read={stats.records_read} written={stats.records_written} "
        f"failed={stats.records_failed} cancelled={stats.cancelled}"
    )
    return stats


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write JSON-lines records to an AWS Kinesis stream")
    parser.add_argument("--config", "-c", default=None, help="YAML configuration file")
    parser.add_argument("--input", "-i", default="-", help="JSON-lines input file ('-' for stdin)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(settings.logging, settings.service_name)

    cancel_event = threading.Event()

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, initiating shutdown")
        cancel_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        stats = run_job(settings, read_records(args.input), cancel_event)
    except ConfigurationError as e:
        for failure in e.failures:
            logger.error(f"Configuration error: {failure}")
        logger.error(f"Job not started: {e}")
        return 2
    except (KinesisSinkError, OSError, ValueError) as e:
        logger.error(f"Job failed: {e}", exc_info=True)
        return 1

    return 130 if stats.cancelled else 0


if __name__ == "__main__":
    sys.exit(main())
