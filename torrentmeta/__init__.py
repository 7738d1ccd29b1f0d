"""
Bencode codec and typed .torrent metainfo for BitTorrent.
"""
from .bencode import (
    BencodeError,
    ByteString,
    DecodeError,
    Dictionary,
    Integer,
    List,
    Value,
    decode,
    decode_all,
    encode,
    from_python,
    to_python,
)
from .hashes import CHUNK_SIZE, ChunkLengthError, FixedChunkArray
from .torrent import File, Info, MultiFile, ProjectionError, SingleFile, Torrent

__version__ = '0.1.0'
