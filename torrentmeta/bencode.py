"""
Bencode encoding and decoding for BitTorrent metainfo.

Decoded terms are represented by four immutable value classes,
``Integer``, ``ByteString``, ``List`` and ``Dictionary``. ``decode`` turns
bytes into one of them (plus whatever input is left over) and ``encode``
turns one back into canonical bytes.
"""
import io
import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Iterator, Mapping, Optional, Tuple, Union

from . import config

logger = logging.getLogger(__name__)

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1
# Longest literal a 64-bit integer or length can need: '-' and 19 digits
MAX_DIGITS = 20


class BencodeError(ValueError):
    """Base class for every error raised while decoding or projecting bencode."""
    pass


class DecodeError(BencodeError):
    """Exception raised for errors in bencode decoding."""

    def __init__(self, message: str, offset: Optional[int] = None):
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
        self.offset = offset


@dataclass(frozen=True)
class Integer:
    """A bencoded integer, limited to the signed 64-bit range."""
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"Integer value must be an int, not {type(self.value).__name__}")
        if not INT64_MIN <= self.value <= INT64_MAX:
            raise ValueError(f"Integer value {self.value} does not fit in 64 bits")


@dataclass(frozen=True)
class ByteString:
    """A bencoded byte string. The payload is raw bytes, not necessarily text."""
    value: bytes

    def __post_init__(self):
        if isinstance(self.value, (bytearray, memoryview)):
            object.__setattr__(self, 'value', bytes(self.value))
        elif not isinstance(self.value, bytes):
            raise TypeError(f"ByteString value must be bytes, not {type(self.value).__name__}")

    def __len__(self) -> int:
        return len(self.value)

    def text(self, encoding: str = 'utf-8') -> str:
        """Decode the payload as text. Raises UnicodeDecodeError if it isn't."""
        return self.value.decode(encoding)


@dataclass(frozen=True)
class List:
    """A bencoded list. Item order is significant."""
    items: Tuple['Value', ...] = ()

    def __post_init__(self):
        items = tuple(self.items)
        for item in items:
            if not isinstance(item, VALUE_TYPES):
                raise TypeError(f"List items must be bencode values, not {type(item).__name__}")
        object.__setattr__(self, 'items', items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator['Value']:
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]


@dataclass(frozen=True)
class Dictionary:
    """
    A bencoded dictionary keyed by raw bytes.

    The in-memory order is whatever order the keys were inserted in; the
    encoder sorts keys itself, so this order never leaks into the output.
    """
    entries: Mapping[bytes, 'Value'] = field(default_factory=dict)

    def __post_init__(self):
        entries = dict(self.entries)
        for key, value in entries.items():
            if not isinstance(key, bytes):
                raise TypeError(f"Dictionary keys must be bytes, not {type(key).__name__}")
            if not isinstance(value, VALUE_TYPES):
                raise TypeError(f"Dictionary values must be bencode values, not {type(value).__name__}")
        object.__setattr__(self, 'entries', entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.entries)

    def __contains__(self, key) -> bool:
        return key in self.entries

    def __getitem__(self, key: bytes) -> 'Value':
        return self.entries[key]

    def get(self, key: bytes, default=None):
        return self.entries.get(key, default)

    def keys(self):
        return self.entries.keys()

    def items(self):
        return self.entries.items()


Value = Union[Integer, ByteString, List, Dictionary]
VALUE_TYPES = (Integer, ByteString, List, Dictionary)


def _parse_decimal(digits: bytes, offset: int, what: str, signed: bool = False) -> int:
    """Parse canonical ASCII decimal digits: no leading zeros and no '-0'."""
    negative = signed and digits.startswith(b"-")
    body = digits[1:] if negative else digits

    if not body:
        raise DecodeError(f"Empty {what}", offset)
    if not body.isdigit():
        raise DecodeError(f"Invalid {what} {digits!r}", offset)
    if len(body) > 1 and body.startswith(b"0"):
        raise DecodeError(f"Leading zero in {what} {digits!r}", offset)
    if negative and body == b"0":
        raise DecodeError(f"Negative zero is not a valid {what}", offset)

    return -int(body) if negative else int(body)


def decode_int(stream: BinaryIO) -> Integer:
    """
    Decode a bencoded integer from the stream. The leading 'i' has
    already been consumed.

    Format: i<number>e
    Example: i42e -> Integer(42)
    """
    offset = stream.tell()
    digits = b""
    char = stream.read(1)

    while char.isdigit() or (char == b"-" and not digits):
        if len(digits) >= MAX_DIGITS:
            raise DecodeError("Integer literal is too long", offset)
        digits += char
        char = stream.read(1)

    if char != b"e":
        raise DecodeError("Expected 'e' at end of integer", offset - 1)

    number = _parse_decimal(digits, offset, "integer", signed=True)
    if not INT64_MIN <= number <= INT64_MAX:
        raise DecodeError(f"Integer {number} does not fit in 64 bits", offset)
    return Integer(number)


def _remaining(stream: BinaryIO) -> int:
    position = stream.tell()
    end = stream.seek(0, io.SEEK_END)
    stream.seek(position)
    return end - position


def decode_string(stream: BinaryIO) -> ByteString:
    """
    Decode a bencoded byte string from the stream.

    Format: <length>:<data>
    Example: 5:hello -> ByteString(b'hello')
    """
    offset = stream.tell()
    length_str = b""
    char = stream.read(1)

    while char.isdigit():
        if len(length_str) >= MAX_DIGITS:
            raise DecodeError("Byte string length is too long", offset)
        length_str += char
        char = stream.read(1)

    if char != b":":
        raise DecodeError("Expected ':' after byte string length", offset)

    length = _parse_decimal(length_str, offset, "byte string length")
    available = _remaining(stream)
    if length > available:
        raise DecodeError(
            f"Byte string length {length} exceeds remaining input ({available} bytes)",
            offset)
    return ByteString(stream.read(length))


class _ListBuilder:
    """A list whose closing 'e' hasn't been read yet."""
    kind = "list"

    def __init__(self, offset: int):
        self.offset = offset
        self.items = []

    def add(self, value: Value, offset: int) -> None:
        self.items.append(value)

    def close(self, offset: int) -> 'List':
        return List(tuple(self.items))


class _DictionaryBuilder:
    """A dictionary whose closing 'e' hasn't been read yet."""
    kind = "dictionary"

    def __init__(self, offset: int):
        self.offset = offset
        self.entries: Dict[bytes, Value] = {}
        self.key: Optional[bytes] = None

    def add(self, value: Value, offset: int) -> None:
        if self.key is None:
            if not isinstance(value, ByteString):
                raise DecodeError(
                    f"Dictionary keys must be strings, not {type(value).__name__}", offset)
            self.key = value.value
        else:
            # Last write wins on duplicate keys.
            self.entries[self.key] = value
            self.key = None

    def close(self, offset: int) -> 'Dictionary':
        if self.key is not None:
            raise DecodeError(f"Missing value for dictionary key {self.key!r}", offset)
        return Dictionary(self.entries)



def _decode_next(stream: BinaryIO, max_depth: int) -> Value:
    """
    Decode one complete term from the stream.

    Lists and dictionaries are tracked on an explicit stack rather than by
    recursion, so nesting is bounded by max_depth and not by the
    interpreter's recursion limit.
    """
    stack = []

    while True:
        offset = stream.tell()
        char = stream.read(1)

        if not char:
            if stack:
                raise DecodeError(f"Unterminated {stack[-1].kind}", stack[-1].offset)
            raise DecodeError("Unexpected end of data", offset)

        if char == b"e" and stack:
            container = stack.pop()
            value = container.close(offset)
            offset = container.offset
        elif char == b"l" or char == b"d":
            if len(stack) >= max_depth:
                raise DecodeError(f"Maximum nesting depth of {max_depth} exceeded", offset)
            stack.append(_ListBuilder(offset) if char == b"l" else _DictionaryBuilder(offset))
            continue
        elif char == b"i":
            value = decode_int(stream)
        elif char.isdigit():
            stream.seek(-1, io.SEEK_CUR)
            value = decode_string(stream)
        else:
            raise DecodeError(f"Unhandled encoded value {char!r}", offset)

        if not stack:
            return value
        stack[-1].add(value, offset)


def decode(data: Union[bytes, str], max_depth: Optional[int] = None) -> Tuple[Value, bytes]:
    """
    Decode one bencoded value from the start of data.

    Args:
        data: Bencoded bytes. Text is UTF-8 encoded first.
        max_depth: Deepest list/dictionary nesting to accept. Defaults to
            config.MAX_DEPTH.

    Returns:
        The decoded value and the bytes following it.

    Raises:
        DecodeError: If data does not start with a well-formed term.
    """
    if isinstance(data, str):
        data = data.encode('utf-8')
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Cannot decode {type(data).__name__}, expected bytes")
    if max_depth is None:
        max_depth = config.MAX_DEPTH

    stream = io.BytesIO(bytes(data))
    value = _decode_next(stream, max_depth)
    remaining = stream.read()
    logger.debug(f"Decoded {type(value).__name__}, {len(remaining)} bytes remaining")
    return value, remaining


def decode_all(data: Union[bytes, str], max_depth: Optional[int] = None) -> Value:
    """Decode data that must hold exactly one bencoded value."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    value, remaining = decode(data, max_depth)
    if remaining:
        raise DecodeError(
            f"Trailing data after bencoded value ({len(remaining)} bytes)",
            len(data) - len(remaining))
    return value


def encode(value: Value) -> bytes:
    """
    Encode a value to canonical bencode.

    Dictionary keys are emitted in ascending raw-byte order whatever order
    they are stored in.
    """
    if isinstance(value, Integer):
        return f"i{value.value}e".encode()
    elif isinstance(value, ByteString):
        return f"{len(value.value)}:".encode() + value.value
    elif isinstance(value, List):
        result = [b"l"]
        for item in value.items:
            result.append(encode(item))
        result.append(b"e")
        return b"".join(result)
    elif isinstance(value, Dictionary):
        result = [b"d"]
        for key in sorted(value.entries):
            result.append(encode(ByteString(key)))
            result.append(encode(value.entries[key]))
        result.append(b"e")
        return b"".join(result)
    else:
        raise TypeError(f"Unsupported type: {type(value)}")


def to_python(value: Value) -> Any:
    """Convert a value to plain int, bytes, list and dict objects."""
    if isinstance(value, Integer):
        return value.value
    elif isinstance(value, ByteString):
        return value.value
    elif isinstance(value, List):
        return [to_python(item) for item in value.items]
    elif isinstance(value, Dictionary):
        return {key: to_python(item) for key, item in value.items()}
    else:
        raise TypeError(f"Unsupported type: {type(value)}")


def from_python(obj: Any) -> Value:
    """
    Build a value from plain Python objects.

    str is UTF-8 encoded, both for byte strings and dictionary keys.
    """
    if isinstance(obj, VALUE_TYPES):
        return obj
    if isinstance(obj, bool):
        raise TypeError("Cannot bencode a bool")
    if isinstance(obj, int):
        return Integer(obj)
    if isinstance(obj, str):
        return ByteString(obj.encode('utf-8'))
    if isinstance(obj, (bytes, bytearray)):
        return ByteString(bytes(obj))
    if isinstance(obj, (list, tuple)):
        return List(tuple(from_python(item) for item in obj))
    if isinstance(obj, dict):
        items: Dict[bytes, Value] = {}
        for key, item in obj.items():
            if isinstance(key, str):
                key = key.encode('utf-8')
            elif not isinstance(key, bytes):
                raise TypeError("Dictionary keys must be strings")
            items[key] = from_python(item)
        return Dictionary(items)
    raise TypeError(f"Unsupported type: {type(obj)}")


def bdecode(data: Union[bytes, str]) -> Any:
    """Decode bencoded data to plain Python objects."""
    return to_python(decode_all(data))


def bencode(obj: Any) -> bytes:
    """Encode plain Python objects to bencode format."""
    return encode(from_python(obj))
