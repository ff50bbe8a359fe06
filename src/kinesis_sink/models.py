"""Core data types shared by the serializer, distributor and writer."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

FieldValue = Optional[Union[str, int, float, bool]]


class DistributionMode(str, Enum):
    """How records are spread over the stream's shards."""
    SPREAD = "spread"
    SINGLE = "single"

    @classmethod
    def from_distribute(cls, distribute: str) -> "DistributionMode":
        """Map a normalized ``"true"``/``"false"`` distribute flag to a mode."""
        return cls.SPREAD if distribute == "true" else cls.SINGLE


@dataclass(frozen=True)
class Record:
    """
    One structured input record.

    Fields are kept as ``(name, value)`` pairs in schema order. Records in
    the same stream may carry different numbers of fields.
    """
    fields: Tuple[Tuple[str, FieldValue], ...]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """Build a record from a mapping, keeping its insertion order."""
        return cls(fields=tuple(data.items()))

    def __iter__(self) -> Iterator[Tuple[str, FieldValue]]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)


@dataclass(frozen=True)
class StreamTarget:
    """Destination stream and how records should be distributed over it."""
    name: str
    shard_count: int = 1
    mode: DistributionMode = DistributionMode.SINGLE


@dataclass(frozen=True)
class Credentials:
    """AWS access key pair used for the Kinesis client."""
    access_key_id: str
    secret_access_key: str

    def __repr__(self) -> str:
        return f"Credentials(access_key_id={self.access_key_id!r}, secret_access_key='***')"
