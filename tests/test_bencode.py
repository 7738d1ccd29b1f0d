import time

import pytest

from torrentmeta.bencode import (
    ByteString,
    DecodeError,
    Dictionary,
    Integer,
    List,
    bdecode,
    bencode,
    decode,
    decode_all,
    encode,
    from_python,
    to_python,
)

# --- Decoder Tests ---

def test_decode_string():
    assert decode(b"5:hello") == (ByteString(b"hello"), b"")


def test_decode_string_length_governs_payload():
    value, remaining = decode(b"3:hello")
    assert value == ByteString(b"hel")
    assert remaining == b"lo"
    assert value != decode(b"5:hello")[0]


def test_decode_empty_string():
    assert decode(b"0:") == (ByteString(b""), b"")


def test_decode_binary_string():
    assert decode(b"3:\x00\xff\x10")[0] == ByteString(b"\x00\xff\x10")


def test_decode_accepts_text():
    assert decode("4:spam")[0] == ByteString(b"spam")


@pytest.mark.parametrize("data, expected", [
    (b"i26e", 26),
    (b"i-53e", -53),
    (b"i0e", 0),
    (b"i9223372036854775807e", 2 ** 63 - 1),
    (b"i-9223372036854775808e", -2 ** 63),
])
def test_decode_integer(data, expected):
    value, remaining = decode(data)
    assert value == Integer(expected)
    assert remaining == b""
    assert encode(value) == data


@pytest.mark.parametrize("data", [
    b"ie",
    b"i-e",
    b"i03e",
    b"i-0e",
    b"i--1e",
    b"i1.5e",
    b"iabce",
    b"i 1e",
    b"i12",
    b"i9223372036854775808e",
    b"i-9223372036854775809e",
])
def test_decode_malformed_integer(data):
    with pytest.raises(DecodeError):
        decode(data)


def test_decode_list():
    value, remaining = decode(b"l4:spam4:eggse")
    assert value == List((ByteString(b"spam"), ByteString(b"eggs")))
    assert remaining == b""


def test_decode_list_preserves_order():
    assert to_python(decode(b"l5:hello5:worlde")[0]) == [b"hello", b"world"]
    assert to_python(decode(b"li-2ei-1ei0ei1ei2ee")[0]) == [-2, -1, 0, 1, 2]


def test_decode_nested_list():
    value, _ = decode(b"l6:nestedl4:spam4:eggsee")
    assert to_python(value) == [b"nested", [b"spam", b"eggs"]]


def test_decode_empty_containers():
    assert decode(b"le")[0] == List(())
    assert decode(b"de")[0] == Dictionary({})


def test_decode_dictionary():
    value, _ = decode(b"d3:bar4:spam3:fooi42ee")
    assert to_python(value) == {b"bar": b"spam", b"foo": 42}


def test_decode_complex():
    value = decode_all(
        b"d4:infod6:lengthi123456e4:name8:test.txt"
        b"12:piece lengthi32768e6:pieces20:aaaaaaaaaaaaaaaaaaaaee")
    assert value[b"info"][b"length"] == Integer(123456)
    assert value[b"info"][b"pieces"] == ByteString(b"a" * 20)


def test_decode_dictionary_accepts_unsorted_keys():
    value, _ = decode(b"d1:bi1e1:ai2ee")
    assert list(value) == [b"b", b"a"]
    assert encode(value) == b"d1:ai2e1:bi1ee"


def test_decode_dictionary_duplicate_key_last_write_wins():
    value, _ = decode(b"d1:ai1e1:bi2e1:ai3ee")
    assert to_python(value) == {b"a": 3, b"b": 2}
    # The key keeps the position of its first occurrence.
    assert list(value) == [b"a", b"b"]
    assert encode(value) == b"d1:ai3e1:bi2ee"


@pytest.mark.parametrize("data", [b"di1ei2ee", b"dl1:ae1:be", b"dd1:a1:be1:ce"])
def test_decode_dictionary_keys_must_be_strings(data):
    with pytest.raises(DecodeError, match="keys must be strings"):
        decode(data)


def test_decode_dictionary_missing_value():
    with pytest.raises(DecodeError, match="Missing value"):
        decode(b"d1:ae")


def test_decode_unterminated_list():
    with pytest.raises(DecodeError, match="Unterminated list") as excinfo:
        decode(b"l4:spam")
    assert excinfo.value.offset == 0


def test_decode_unterminated_dictionary():
    with pytest.raises(DecodeError, match="Unterminated dictionary"):
        decode(b"d1:ai1e")


def test_decode_truncated_string():
    with pytest.raises(DecodeError, match="exceeds remaining input") as excinfo:
        decode(b"10:abc")
    assert excinfo.value.offset == 0


def test_decode_huge_string_length():
    with pytest.raises(DecodeError):
        decode(b"99999999999999999999999999:abc")


@pytest.mark.parametrize("data", [b"i" + b"1" * 400000, b"1" * 400000 + b":"])
def test_decode_long_digit_run_fails_fast(data):
    start = time.perf_counter()
    with pytest.raises(DecodeError, match="too long") as excinfo:
        decode(data)
    assert time.perf_counter() - start < 1.0
    assert excinfo.value.offset in (0, 1)


def test_decode_integer_stops_at_first_non_digit():
    with pytest.raises(DecodeError, match="Expected 'e'") as excinfo:
        decode(b"i12x" + b"3" * 100000 + b"e")
    assert excinfo.value.offset == 0


@pytest.mark.parametrize("data", [b"5hello", b"05:hello", b"5"])
def test_decode_malformed_string(data):
    with pytest.raises(DecodeError):
        decode(data)


def test_decode_unhandled_value():
    with pytest.raises(DecodeError, match="Unhandled encoded value") as excinfo:
        decode(b"x")
    assert excinfo.value.offset == 0


def test_decode_unhandled_value_reports_offset():
    with pytest.raises(DecodeError) as excinfo:
        decode(b"li1ex")
    assert excinfo.value.offset == 4


@pytest.mark.parametrize("data", [b"", b"e"])
def test_decode_nothing_to_decode(data):
    with pytest.raises(DecodeError):
        decode(data)


def test_decode_returns_remaining_bytes():
    assert decode(b"i1ei2e") == (Integer(1), b"i2e")


def test_decode_all_rejects_trailing_data():
    with pytest.raises(DecodeError, match="Trailing data"):
        decode_all(b"i1ei2e")


def test_decode_max_depth():
    assert decode(b"llleee", max_depth=3)[0] == List((List((List(()),)),))
    with pytest.raises(DecodeError, match="nesting depth"):
        decode(b"llleee", max_depth=2)


def test_decode_default_max_depth():
    decode(b"l" * 512 + b"e" * 512)
    with pytest.raises(DecodeError, match="nesting depth"):
        decode(b"l" * 513 + b"e" * 513)


def test_decode_rejects_non_bytes():
    with pytest.raises(TypeError):
        decode(42)

# --- Encoder Tests ---

def test_encode_integer():
    assert encode(Integer(42)) == b"i42e"
    assert encode(Integer(-42)) == b"i-42e"
    assert encode(Integer(0)) == b"i0e"
    assert encode(Integer(-0)) == b"i0e"


def test_encode_string():
    assert encode(ByteString(b"spam")) == b"4:spam"
    assert encode(ByteString(b"")) == b"0:"


def test_encode_list():
    assert encode(List((ByteString(b"spam"), Integer(42)))) == b"l4:spami42ee"


def test_encode_dictionary_sorts_keys():
    value = Dictionary({b"foo": Integer(42), b"bar": ByteString(b"spam")})
    assert encode(value) == b"d3:bar4:spam3:fooi42ee"


def test_encode_dictionary_sorts_by_raw_bytes():
    value = Dictionary({b"a": Integer(1), b"B": Integer(2), b"\xff": Integer(3), b"": Integer(4)})
    assert encode(value) == b"d0:i4e1:Bi2e1:ai1e1:\xffi3ee"


def test_encode_invalid_type():
    with pytest.raises(TypeError):
        encode({1, 2, 3})


@pytest.mark.parametrize("data", [
    b"i-7e",
    b"4:spam",
    b"l6:nestedl4:spam4:eggsee",
    b"d4:infod6:lengthi1e4:name1:aee",
    b"ld1:ali1ei2eee0:e",
])
def test_round_trip(data):
    assert encode(decode_all(data)) == data

# --- Value model Tests ---

def test_integer_out_of_range():
    with pytest.raises(ValueError):
        Integer(2 ** 63)
    with pytest.raises(ValueError):
        Integer(-2 ** 63 - 1)


def test_integer_rejects_bool():
    with pytest.raises(TypeError):
        Integer(True)


def test_byte_string_rejects_text():
    with pytest.raises(TypeError):
        ByteString("spam")


def test_byte_string_text():
    assert ByteString(b"caf\xc3\xa9").text() == "café"
    with pytest.raises(UnicodeDecodeError):
        ByteString(b"\xff").text()


def test_list_rejects_plain_objects():
    with pytest.raises(TypeError):
        List((1, 2))


def test_dictionary_rejects_text_keys():
    with pytest.raises(TypeError):
        Dictionary({"a": Integer(1)})


def test_dictionary_mapping_methods():
    value = Dictionary({b"b": Integer(1), b"a": Integer(2)})
    assert value.entries == {b"b": Integer(1), b"a": Integer(2)}
    assert list(value.keys()) == [b"b", b"a"]
    assert dict(value.items()) == value.entries
    assert value.get(b"missing") is None


def test_from_python():
    value = from_python({"b": 1, "a": [b"x", "y"]})
    assert encode(value) == b"d1:al1:x1:ye1:bi1ee"


@pytest.mark.parametrize("obj", [True, 1.5, None, {1: 2}, {b"a": object()}])
def test_from_python_unsupported(obj):
    with pytest.raises(TypeError):
        from_python(obj)


def test_bdecode_and_bencode():
    assert bdecode(b"d3:bar4:spam3:fooi42ee") == {b"bar": b"spam", b"foo": 42}
    assert bencode({b"foo": 42, b"bar": b"spam"}) == b"d3:bar4:spam3:fooi42ee"

# --- Cross-check against bencodepy ---

# bencodepy writes dictionary keys in insertion order, so it is only a valid
# encoding reference for samples whose keys are already sorted.
SORTED_SAMPLES = [
    42,
    -1,
    b"spam",
    [b"spam", 42, [b"nested"]],
    {b"announce": b"http://tracker", b"info": {b"length": 10, b"name": b"a"}},
]
UNSORTED_SAMPLES = [
    {b"zeta": [], b"alpha": {}, b"mid": b""},
]


def _bencodepy_decode(bencodepy, data):
    decoded = bencodepy.decode(data)
    # Top-level scalars come back wrapped in a 1-tuple.
    if isinstance(decoded, tuple):
        (decoded,) = decoded
    return decoded


@pytest.mark.parametrize("obj", SORTED_SAMPLES)
def test_encode_matches_bencodepy(obj):
    bencodepy = pytest.importorskip("bencodepy")
    assert bencode(obj) == bencodepy.encode(obj)


@pytest.mark.parametrize("obj", SORTED_SAMPLES + UNSORTED_SAMPLES)
def test_decode_matches_bencodepy(obj):
    bencodepy = pytest.importorskip("bencodepy")
    data = bencodepy.encode(obj)
    assert bdecode(data) == _bencodepy_decode(bencodepy, data)


def test_unsorted_bencodepy_output_reencodes_sorted():
    bencodepy = pytest.importorskip("bencodepy")
    data = bencodepy.encode({b"zeta": [], b"alpha": {}, b"mid": b""})
    assert encode(decode_all(data)) == b"d5:alphade3:mid0:4:zetalee"
