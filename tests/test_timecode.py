from __future__ import annotations

import datetime as dt

import pytest

from sdblock.core.timecode import TIME_WIDTH, decode_time, encode_time


def test_encode_is_fixed_width_zero_padded():
    assert encode_time(0) == "000000000000"
    assert encode_time(1_700_000_000) == "001700000000"
    assert len(encode_time(1_700_000_000.9)) == TIME_WIDTH


def test_encode_truncates_fractional_seconds():
    assert encode_time(1234.99) == encode_time(1234)


def test_encode_orders_like_time_from_2000_to_9999():
    years = [2000, 2001, 2038, 2100, 2999, 5000, 9999]
    moments = [dt.datetime(year, 1, 1, tzinfo=dt.timezone.utc) for year in years]
    moments.append(dt.datetime(9999, 12, 31, 23, 59, 59, tzinfo=dt.timezone.utc))
    encoded = [encode_time(moment) for moment in moments]
    assert encoded == sorted(encoded)
    assert len(set(encoded)) == len(encoded)
    assert all(len(value) == TIME_WIDTH for value in encoded)


def test_encode_orders_across_digit_boundaries():
    assert encode_time(9) < encode_time(10)
    assert encode_time(999_999_999) < encode_time(1_000_000_000)


def test_naive_datetime_is_treated_as_utc():
    naive = dt.datetime(2024, 5, 1, 12, 0, 0)
    aware = naive.replace(tzinfo=dt.timezone.utc)
    assert encode_time(naive) == encode_time(aware)


def test_decode_inverts_encode():
    moment = dt.datetime(2024, 5, 1, 12, 30, 15, tzinfo=dt.timezone.utc)
    assert decode_time(encode_time(moment)) == moment


@pytest.mark.parametrize("value", [-1, 10**12])
def test_encode_rejects_out_of_range(value):
    with pytest.raises(ValueError):
        encode_time(value)


@pytest.mark.parametrize("value", ["", "123", "00000000000x", "0000000000000"])
def test_decode_rejects_malformed(value):
    with pytest.raises(ValueError):
        decode_time(value)


def test_fraction_of_a_second_before_epoch_is_rejected():
    with pytest.raises(ValueError):
        encode_time(-0.5)
    with pytest.raises(ValueError):
        encode_time(dt.datetime(1969, 12, 31, 23, 59, 59, 500000, tzinfo=dt.timezone.utc))
