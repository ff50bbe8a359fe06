"""AWS-specific configuration and client setup."""

import logging
from typing import Optional

import boto3
from botocore.config import Config

from ..models import Credentials
from .settings import AWSConfig

logger = logging.getLogger(__name__)


class AWSClientManager:
    """Manages the Kinesis client instance with proper configuration."""

    def __init__(self, aws_config: AWSConfig, credentials: Optional[Credentials] = None):
        self.config = aws_config
        self.credentials = credentials
        self._kinesis_client = None

        # Client-side retries are disabled; writes follow the sink's RetryConfig
        self._boto_config = Config(
            region_name=aws_config.region,
            retries={
                'max_attempts': 1,
                'mode': 'standard'
            },
            max_pool_connections=aws_config.max_pool_connections,
            connect_timeout=aws_config.connect_timeout,
            read_timeout=aws_config.read_timeout
        )

    @property
    def kinesis_client(self):
        """Get or create Kinesis client."""
        if self._kinesis_client is None:
            kwargs = {'config': self._boto_config, 'region_name': self.config.region}

            if self.credentials is not None:
                kwargs['aws_access_key_id'] = self.credentials.access_key_id
                kwargs['aws_secret_access_key'] = self.credentials.secret_access_key

            if self.config.endpoint_url:
                # LocalStack configuration for local development
                kwargs['endpoint_url'] = self.config.endpoint_url

            self._kinesis_client = boto3.client('kinesis', **kwargs)

            if self.config.endpoint_url:
                logger.info(f"Created LocalStack Kinesis client: {self.config.endpoint_url}")
            else:
                logger.info(f"Created AWS Kinesis client in region: {self.config.region}")

        return self._kinesis_client
