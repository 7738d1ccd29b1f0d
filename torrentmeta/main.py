"""
Command-line entry point for torrentmeta.

    torrentmeta decode <bencoded>   print one bencoded value as JSON
    torrentmeta info <file>         summarize a .torrent file
"""
import argparse
import json
import logging
import os
import sys
from typing import Any, List, Optional

from .bencode import BencodeError, ByteString, Dictionary, Integer, Value, decode
from . import bencode
from .config import JSON_INDENT, LOG_FORMAT, LOG_LEVEL
from .torrent import Torrent

logger = logging.getLogger(__name__)

HEX_PREFIX = 'hex:'


def _text_or_hex(data: bytes) -> str:
    """
    Return data as text if it is UTF-8, or as prefixed hex otherwise.

    Text that itself starts with the prefix is also shown as hex, so two
    different byte strings never render the same.
    """
    try:
        text = data.decode('utf-8')
    except UnicodeDecodeError:
        return f"{HEX_PREFIX}{data.hex()}"
    if text.startswith(HEX_PREFIX):
        return f"{HEX_PREFIX}{data.hex()}"
    return text


def to_json(value: Value) -> Any:
    """Convert a value to JSON-friendly objects for display."""
    if isinstance(value, Integer):
        return value.value
    elif isinstance(value, ByteString):
        return _text_or_hex(value.value)
    elif isinstance(value, bencode.List):
        return [to_json(item) for item in value]
    elif isinstance(value, Dictionary):
        return {_text_or_hex(key): to_json(item) for key, item in value.items()}
    raise TypeError(f"Unsupported type: {type(value)}")


def cmd_decode(args: argparse.Namespace) -> int:
    # Arguments holding raw bytes arrive surrogate-escaped.
    value, remaining = decode(os.fsencode(args.value))
    print(json.dumps(to_json(value), indent=JSON_INDENT, ensure_ascii=False))
    if remaining:
        print(f"remaining: {_text_or_hex(remaining)}")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    with open(args.path, 'rb') as f:
        data = f.read()

    torrent = Torrent.from_bytes(data)
    print(torrent)
    for path in torrent.info.get_file_list():
        print(f"  {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='torrentmeta',
        description='Decode bencoded values and inspect .torrent files')
    subparsers = parser.add_subparsers(dest='command', required=True)

    decode_parser = subparsers.add_parser('decode', help='Decode a bencoded value and print it as JSON')
    decode_parser.add_argument('value', help='Bencoded value, e.g. l4:spam4:eggse')
    decode_parser.set_defaults(func=cmd_decode)

    info_parser = subparsers.add_parser('info', help='Show the metainfo of a .torrent file')
    info_parser.add_argument('path', help='Path to the .torrent file')
    info_parser.set_defaults(func=cmd_info)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    args = build_parser().parse_args(argv)

    try:
        return args.func(args)
    except BencodeError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"Could not read {getattr(args, 'path', '')}: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
