"""
Typed view of a decoded .torrent (metainfo) file.

A metainfo file is a bencoded dictionary with an ``announce`` URL and an
``info`` dictionary. The info dictionary describes either a single file
(``length``) or a directory of files (``files``), never both.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from . import bencode
from .bencode import BencodeError, ByteString, Dictionary, Integer, Value
from .hashes import CHUNK_SIZE, FixedChunkArray

logger = logging.getLogger(__name__)


class ProjectionError(BencodeError):
    """Raised when a decoded value does not have the metainfo shape."""

    def __init__(self, message: str, field: Optional[str] = None):
        if field:
            message = f"{field}: {message}"
        super().__init__(message)
        self.field = field


def _path(parent: str, name: str) -> str:
    return f"{parent}.{name}" if parent else name


def _require(dictionary: Dictionary, key: bytes, parent: str) -> Value:
    name = _path(parent, key.decode('utf-8'))
    if key not in dictionary:
        raise ProjectionError("missing required field", name)
    return dictionary[key]


def _as_dict(value: Value, name: str) -> Dictionary:
    if not isinstance(value, Dictionary):
        raise ProjectionError(f"expected a dictionary, got {type(value).__name__}", name)
    return value


def _as_text(value: Value, name: str) -> str:
    if not isinstance(value, ByteString):
        raise ProjectionError(f"expected a string, got {type(value).__name__}", name)
    try:
        return value.text()
    except UnicodeDecodeError:
        raise ProjectionError("string is not valid UTF-8", name)


def _as_unsigned(value: Value, name: str) -> int:
    if not isinstance(value, Integer):
        raise ProjectionError(f"expected an integer, got {type(value).__name__}", name)
    if value.value < 0:
        raise ProjectionError(f"expected a non-negative integer, got {value.value}", name)
    return value.value


def _as_list(value: Value, name: str) -> bencode.List:
    if not isinstance(value, bencode.List):
        raise ProjectionError(f"expected a list, got {type(value).__name__}", name)
    return value


def _text_value(text: str) -> ByteString:
    return ByteString(text.encode('utf-8'))


@dataclass
class File:
    """Represents a file within a multi-file torrent."""
    length: int
    path: List[str]

    @classmethod
    def from_value(cls, value: Value, name: str = 'file') -> 'File':
        entry = _as_dict(value, name)
        length = _as_unsigned(_require(entry, b'length', name), _path(name, 'length'))
        segments = _as_list(_require(entry, b'path', name), _path(name, 'path'))
        path = [
            _as_text(segment, f"{name}.path[{i}]")
            for i, segment in enumerate(segments)
        ]
        return cls(length=length, path=path)

    def to_value(self) -> Dictionary:
        return Dictionary({
            b'length': Integer(self.length),
            b'path': bencode.List(tuple(_text_value(segment) for segment in self.path)),
        })


@dataclass
class SingleFile:
    """The info dictionary describes one file of ``length`` bytes."""
    length: int

    def to_items(self) -> Dict[bytes, Value]:
        return {b'length': Integer(self.length)}


@dataclass
class MultiFile:
    """The info dictionary describes a directory holding ``files``."""
    files: List[File] = field(default_factory=list)

    def to_items(self) -> Dict[bytes, Value]:
        return {b'files': bencode.List(tuple(f.to_value() for f in self.files))}


Key = Union[SingleFile, MultiFile]


def _project_key(info: Dictionary, parent: str) -> Key:
    """Pick the single-file or multi-file layout by looking at which field is present."""
    has_length = b'length' in info
    has_files = b'files' in info

    if has_length and has_files:
        raise ProjectionError(
            "both 'length' and 'files' are present, expected exactly one", parent)
    if has_length:
        return SingleFile(length=_as_unsigned(info[b'length'], _path(parent, 'length')))
    if has_files:
        name = _path(parent, 'files')
        files = [
            File.from_value(entry, f"{name}[{i}]")
            for i, entry in enumerate(_as_list(info[b'files'], name))
        ]
        return MultiFile(files=files)
    raise ProjectionError("neither 'length' nor 'files' is present, expected exactly one", parent)


@dataclass
class Info:
    """Represents the 'info' dictionary in a .torrent file."""
    # In the single file case the name of the file, otherwise the name of
    # the directory holding the files.
    name: str
    piece_length: int
    # Each chunk is the SHA-1 digest of the piece at the same index.
    pieces: FixedChunkArray
    key: Key

    @classmethod
    def from_value(cls, value: Value, name: str = 'info') -> 'Info':
        info = _as_dict(value, name)
        pieces_name = _path(name, 'pieces')
        pieces = _require(info, b'pieces', name)
        if not isinstance(pieces, ByteString):
            raise ProjectionError(
                f"expected a string, got {type(pieces).__name__}", pieces_name)

        return cls(
            name=_as_text(_require(info, b'name', name), _path(name, 'name')),
            piece_length=_as_unsigned(
                _require(info, b'piece length', name), _path(name, 'piece length')),
            pieces=FixedChunkArray.from_bytes(pieces.value, CHUNK_SIZE),
            key=_project_key(info, name),
        )

    @property
    def is_multi_file(self) -> bool:
        return isinstance(self.key, MultiFile)

    def get_total_size(self) -> int:
        """Get the total size of all files in the torrent in bytes."""
        if isinstance(self.key, MultiFile):
            return sum(f.length for f in self.key.files)
        return self.key.length

    def get_file_list(self) -> List[str]:
        """Get a list of all files in the torrent."""
        if isinstance(self.key, MultiFile):
            return ['/'.join(f.path) for f in self.key.files]
        return [self.name]

    def to_value(self) -> Dictionary:
        items = {
            b'name': _text_value(self.name),
            b'piece length': Integer(self.piece_length),
            b'pieces': self.pieces.to_value(),
        }
        items.update(self.key.to_items())
        return Dictionary(items)


@dataclass
class Torrent:
    """Metainfo files (aka .torrent files) are bencoded dictionaries."""
    announce: str
    info: Info

    @classmethod
    def from_value(cls, value: Value) -> 'Torrent':
        """
        Project a decoded top-level value onto the metainfo structure.

        Unknown fields are ignored and value is left untouched.

        Raises:
            ProjectionError: If a required field is missing or has the wrong type.
            ChunkLengthError: If 'pieces' is not a whole number of digests.
        """
        root = _as_dict(value, '')
        torrent = cls(
            announce=_as_text(_require(root, b'announce', ''), 'announce'),
            info=Info.from_value(_require(root, b'info', ''), 'info'),
        )
        logger.debug(f"Projected torrent {torrent.info.name!r} "
                     f"with {len(torrent.info.pieces)} pieces")
        return torrent

    @classmethod
    def from_bytes(cls, data: bytes) -> 'Torrent':
        """Decode a complete metainfo file and project it."""
        return cls.from_value(bencode.decode_all(data))

    def to_value(self) -> Dictionary:
        return Dictionary({
            b'announce': _text_value(self.announce),
            b'info': self.info.to_value(),
        })

    def __str__(self) -> str:
        """String representation of the torrent."""
        return (f"Torrent: {self.info.name}\n"
                f"Announce: {self.announce}\n"
                f"Size: {self.info.get_total_size() / (1024*1024):.2f} MB\n"
                f"Files: {len(self.info.get_file_list())}\n"
                f"Piece length: {self.info.piece_length}\n"
                f"Pieces: {len(self.info.pieces)}")
