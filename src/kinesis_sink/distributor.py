"""Partition key assignment for spread and single-shard distribution."""

from typing import Optional

from .models import DistributionMode

SINGLE_PARTITION_KEY = "0"

# Kinesis maps partition keys onto a 128-bit hash key space
HASH_KEY_SPACE = 2 ** 128


def assign(record_index: int, mode: DistributionMode, shard_count: int) -> str:
    """
    Partition key for the record at ``record_index``.

    Single mode always returns the same key. Spread mode cycles through
    ``shard_count`` buckets: ``0, 1, ..., shard_count - 1, 0, 1, ...``.
    """
    if mode == DistributionMode.SINGLE:
        return SINGLE_PARTITION_KEY
    return str(record_index % shard_count)


def explicit_hash_key(bucket: int, shard_count: int) -> str:
    """
    Hash key in the middle of ``bucket``'s slice of the hash key space.

    On a stream whose shards split the key space uniformly (what
    CreateStream and UNIFORM_SCALING produce) bucket ``i`` lands on shard ``i``.
    """
    slice_size = HASH_KEY_SPACE // shard_count
    return str(bucket * slice_size + slice_size // 2)


class ShardDistributor:
    """
    Assigns partition keys to a worker's records in arrival order.

    The counter belongs to this instance only and starts at zero, so every
    writer spreads its own records independently of other workers.
    """

    def __init__(self, mode: DistributionMode, shard_count: int):
        if shard_count < 1:
            raise ValueError(f"shard_count must be at least 1, got {shard_count}")
        self.mode = mode
        self.shard_count = shard_count
        self._counter = 0

    @property
    def records_assigned(self) -> int:
        return self._counter

    def next_key(self) -> str:
        key = assign(self._counter, self.mode, self.shard_count)
        self._counter += 1
        return key

    def hash_key_for(self, partition_key: str) -> Optional[str]:
        """Explicit hash key pinning a spread-mode bucket to its shard."""
        if self.mode == DistributionMode.SINGLE:
            return None
        return explicit_hash_key(int(partition_key), self.shard_count)
