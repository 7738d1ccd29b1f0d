"""
Fixed-size chunk arrays stored in a single bencoded byte string.

The ``pieces`` field of a metainfo file holds the SHA-1 digest of every
piece, concatenated into one byte string. FixedChunkArray splits such a
string back into its digests.
"""
import logging
from dataclasses import dataclass
from typing import Iterator, Tuple

from .bencode import ByteString, DecodeError, Value

logger = logging.getLogger(__name__)

# Width of a SHA-1 digest
CHUNK_SIZE = 20


class ChunkLengthError(DecodeError):
    """Raised when a byte string isn't a whole number of chunks."""

    def __init__(self, length: int, chunk_size: int = CHUNK_SIZE):
        super().__init__(
            f"Byte string length {length} is not a multiple of {chunk_size}")
        self.length = length
        self.chunk_size = chunk_size


@dataclass(frozen=True)
class FixedChunkArray:
    """An ordered, immutable sequence of equally sized byte chunks."""
    chunks: Tuple[bytes, ...] = ()
    chunk_size: int = CHUNK_SIZE

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, not {self.chunk_size}")
        chunks = tuple(bytes(chunk) for chunk in self.chunks)
        for chunk in chunks:
            if len(chunk) != self.chunk_size:
                raise ValueError(
                    f"Chunk of {len(chunk)} bytes in an array of {self.chunk_size}-byte chunks")
        object.__setattr__(self, 'chunks', chunks)

    @classmethod
    def from_bytes(cls, data: bytes, chunk_size: int = CHUNK_SIZE) -> 'FixedChunkArray':
        """
        Split data into chunks of chunk_size bytes.

        Raises:
            ChunkLengthError: If len(data) is not a multiple of chunk_size.
        """
        if chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, not {chunk_size}")
        if len(data) % chunk_size != 0:
            raise ChunkLengthError(len(data), chunk_size)

        chunks = tuple(data[i:i + chunk_size] for i in range(0, len(data), chunk_size))
        logger.debug(f"Split {len(data)} bytes into {len(chunks)} chunks")
        return cls(chunks, chunk_size)

    @classmethod
    def from_value(cls, value: Value, chunk_size: int = CHUNK_SIZE) -> 'FixedChunkArray':
        """Build from a decoded value, which must be a byte string."""
        if not isinstance(value, ByteString):
            raise DecodeError(
                f"Expected a byte string of {chunk_size}-byte chunks, got {type(value).__name__}")
        return cls.from_bytes(value.value, chunk_size)

    def to_bytes(self) -> bytes:
        return b"".join(self.chunks)

    def to_value(self) -> ByteString:
        return ByteString(self.to_bytes())

    def __len__(self) -> int:
        return len(self.chunks)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.chunks)

    def __getitem__(self, index):
        return self.chunks[index]
