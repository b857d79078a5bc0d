import os
import time

import pytest

from tools.string_extractor import extract_strings


def test_terminated_run_is_emitted():
    data = b"\x01\x02ABCDEFG\x00\xff"
    table = extract_strings(data, 6)

    assert table.entries == {2: b"ABCDEFG"}


def test_run_shorter_than_minimum_is_dropped():
    assert len(extract_strings(b"ABCDEFG\x00", 8)) == 0


def test_run_of_exactly_minimum_length_is_kept():
    assert extract_strings(b"ABCDEF\x00", 6).entries == {0: b"ABCDEF"}


def test_default_minimum_is_six():
    table = extract_strings(b"ABCDE\x00ABCDEF\x00")

    assert table.min_length == 6
    assert table.entries == {6: b"ABCDEF"}


def test_unterminated_run_at_end_of_buffer_is_dropped():
    assert len(extract_strings(b"\x00HELLO WORLD", 6)) == 0


def test_buffer_without_zero_byte_is_empty():
    assert len(extract_strings(b"plenty of printable text but no terminator", 6)) == 0


def test_interrupted_run_is_abandoned():
    # 0x0a is not printable and not NUL
    table = extract_strings(b"first line\nsecond\x00", 6)

    assert table.entries == {11: b"second"}


def test_high_bytes_abandon_the_run():
    table = extract_strings(b"ABCDEFGH\x80IJKLMNOP\x00", 6)

    assert table.entries == {9: b"IJKLMNOP"}


def test_space_and_tilde_are_printable():
    table = extract_strings(b"\x00 a~b c~\x00", 6)

    assert table.entries == {1: b" a~b c~"}


def test_multiple_strings_keyed_by_offset():
    data = b"version 1.2\x00\x00\x00\x00uart init\x00ok\x00"
    table = extract_strings(data, 6)

    assert table.entries == {0: b"version 1.2", 15: b"uart init"}
    assert 15 in table
    assert table[0] == b"version 1.2"


def test_all_zero_buffer_is_empty():
    assert len(extract_strings(bytes(4096), 6)) == 0


def test_minimum_below_one_is_rejected():
    with pytest.raises(ValueError):
        extract_strings(b"abc\x00", 0)


@pytest.mark.parametrize("min_length", [1, 4, 6, 10])
def test_entries_respect_invariants(min_length):
    data = os.urandom(2048) + b"sentinel string\x00"
    table = extract_strings(data, min_length)

    for offset, text in table.items():
        assert len(text) >= min_length
        assert b"\x00" not in text
        assert data[offset:offset + len(text)] == text
        assert data[offset + len(text)] == 0
        assert all(0x20 <= b <= 0x7E for b in text)
        # starts a maximal run
        assert offset == 0 or not 0x20 <= data[offset - 1] <= 0x7E


def test_matches_byte_by_byte_state_machine():
    data = os.urandom(4096).replace(b"\xaa", b"\x00") + b"tail\x00"

    expected = {}
    in_string, start = False, 0
    for i, val in enumerate(data):
        if val == 0 and in_string:
            if i - start >= 4:
                expected[start] = data[start:i]
            in_string = False
            continue
        if 0x20 <= val <= 0x7E:
            if not in_string:
                start = i
            in_string = True
        else:
            in_string = False

    assert extract_strings(data, 4).entries == expected


def test_extraction_is_idempotent():
    data = os.urandom(2048)

    assert extract_strings(data, 3).entries == extract_strings(data, 3).entries


def test_long_unterminated_padding_is_linear():
    # space padding running into erased flash
    data = b"\x00" + b" " * 400_000 + b"\xff" + b"after padding\x00"

    start = time.perf_counter()
    table = extract_strings(data, 6)
    elapsed = time.perf_counter() - start

    assert table.entries == {400_002: b"after padding"}
    assert elapsed < 2.0
