"""Pytest configuration and shared fixtures."""

from typing import Any, Dict
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from kinesis_sink.config.settings import (
    AWSConfig,
    KinesisSinkConfig,
    LoggingConfig,
    RetryConfig,
    SinkSettings,
)
from kinesis_sink.models import Record


def make_client_error(code: str, operation_name: str = 'PutRecord') -> ClientError:
    """Build a botocore ClientError with the given error code."""
    return ClientError(
        error_response={'Error': {'Code': code, 'Message': f'{code} raised by test'}},
        operation_name=operation_name
    )


def stream_summary(status: str = 'ACTIVE', open_shards: int = 1) -> Dict[str, Any]:
    """Mock DescribeStreamSummary response."""
    return {
        'StreamDescriptionSummary': {
            'StreamName': 'test-stream',
            'StreamStatus': status,
            'OpenShardCount': open_shards
        }
    }


@pytest.fixture
def fast_retry_config() -> RetryConfig:
    """Retry policy without delays."""
    return RetryConfig(
        max_attempts=3,
        initial_backoff_seconds=0.0,
        max_backoff_seconds=0.0,
        jitter=False
    )


@pytest.fixture
def kinesis_config() -> KinesisSinkConfig:
    """Valid literal Kinesis sink options."""
    return KinesisSinkConfig(
        referenceName="KinesisSinkTest",
        name="test-stream",
        accessID="someId",
        accessKey="SomeSecret",
        bodyField="body",
        shardCount=1,
        distribute="true"
    )


@pytest.fixture
def test_settings(kinesis_config, fast_retry_config) -> SinkSettings:
    """Create test settings."""
    return SinkSettings(
        service_name="test-kinesis-sink",
        kinesis=kinesis_config,
        aws=AWSConfig(region="us-east-1", endpoint_url="http://localhost:4566"),
        retry=fast_retry_config,
        logging=LoggingConfig(level="DEBUG", format="text")
    )


@pytest.fixture
def mock_kinesis_client():
    """Mock Kinesis client for an existing, ACTIVE single-shard stream."""
    client = Mock()
    client.describe_stream_summary = Mock(return_value=stream_summary())
    client.create_stream = Mock(return_value={})
    client.update_shard_count = Mock(return_value={})
    client.put_record = Mock(return_value={
        'ShardId': 'shardId-000000000000',
        'SequenceNumber': '49590338271490256608559692538361571095921575989136588898'
    })
    return client


@pytest.fixture
def sample_record() -> Record:
    """Sample record matching the rowkey/body/count schema."""
    return Record.from_dict({
        'rowkey': 'row1',
        'body': 'hello',
        'count': 3
    })
