"""
Kinesis Sink - Batch pipeline connector writing records to AWS Kinesis.

This package serializes structured records one at a time into delimited text
lines and writes them to a Kinesis data stream, either spread evenly across
the stream's shards or pinned to a single shard.
"""

__version__ = "1.0.0"
