import os

import pytest

from tokenvm.ids import EMPTY_ID, VERSION, SemanticVersion, decode_id, encode_id


def test_empty_id_encoding():
    assert encode_id(EMPTY_ID) == "1" * 32 + "LpoYY"


@pytest.mark.parametrize("raw", [bytes(range(32)), b"\xff" * 32, os.urandom(32)])
def test_round_trip(raw):
    assert decode_id(encode_id(raw)) == raw


def test_wrong_length_rejected():
    with pytest.raises(ValueError):
        encode_id(b"\x01" * 31)


def test_bad_checksum_rejected():
    text = encode_id(bytes(range(32)))
    last = "2" if text[-1] != "2" else "3"
    with pytest.raises(ValueError):
        decode_id(text[:-1] + last)


def test_bad_character_rejected():
    with pytest.raises(ValueError):
        decode_id("0OIl")


def test_too_short_rejected():
    with pytest.raises(ValueError):
        decode_id("1")


def test_version_string():
    assert str(SemanticVersion(0, 0, 1)) == "v0.0.1"
    assert VERSION == SemanticVersion(0, 0, 1)


def test_version_ordering():
    assert SemanticVersion(0, 0, 1) < SemanticVersion(0, 1, 0)
    assert str(SemanticVersion(1, 2, 3)).startswith("v1.2")