import pytest

from torrentmeta.bencode import from_python

PIECES = b"a" * 20 + b"b" * 20


@pytest.fixture
def single_file_dict():
    return {
        b'announce': b'http://tracker.example.com/announce',
        b'info': {
            b'name': b'debian.iso',
            b'piece length': 262144,
            b'pieces': PIECES,
            b'length': 400000,
        },
    }


@pytest.fixture
def multi_file_dict():
    return {
        b'announce': b'udp://tracker.example.com:1337/announce',
        b'comment': b'ignored',
        b'info': {
            b'name': b'album',
            b'piece length': 16384,
            b'pieces': PIECES,
            b'files': [
                {b'length': 100, b'path': [b'cd1', b'01.flac']},
                {b'length': 250, b'path': [b'cover.jpg']},
            ],
        },
    }


@pytest.fixture
def single_file_value(single_file_dict):
    return from_python(single_file_dict)


@pytest.fixture
def multi_file_value(multi_file_dict):
    return from_python(multi_file_dict)
