"""Unit tests for gateway payload normalization."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.records import UNKNOWN, PayloadShape
from services.normalizer import (
    FLAT_TEMPERATURE_RULES,
    normalize,
    parse_number,
    resolve,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _flat(payload):
    return normalize(payload, PayloadShape.flat, NOW)


def _nested(payload):
    return normalize(payload, PayloadShape.nested, NOW)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("12.5", 12.5),
        (" 7 ", 7.0),
        (0, 0.0),
        ("0", 0.0),
        (3, 3.0),
        ("", None),
        ("abc", None),
        ("nan", None),
        ("inf", None),
        (None, None),
        (True, None),
        ({"value": 1}, None),
        (10**400, None),
        ("1e400", None),
    ],
)
def test_parse_number(value, expected) -> None:
    assert parse_number(value) == expected


def test_flat_fahrenheit_is_converted_to_celsius() -> None:
    reading = _flat({"tempf": "68"})

    assert reading.temperature == pytest.approx(20.0)
    assert reading.timestamp == NOW


def test_flat_plain_temp_is_not_converted() -> None:
    assert _flat({"temp": "20"}).temperature == 20.0


def test_flat_temperature_priority_first_present_wins() -> None:
    reading = _flat({"temp": "5", "tempinf": "50", "temp1f": "41", "tempf": "32"})

    assert reading.temperature == pytest.approx(0.0)


def test_flat_unparsable_value_falls_through_to_next_rule() -> None:
    reading = _flat({"tempf": "n/a", "temp1f": "", "tempinf": "212"})

    assert reading.temperature == pytest.approx(100.0)


def test_resolve_returns_none_when_no_rule_matches() -> None:
    assert resolve(FLAT_TEMPERATURE_RULES, {"humidity": "40"}) is None


def test_flat_humidity_and_soil_synonyms() -> None:
    reading = _flat(
        {
            "humidityin": "44",
            "humidity1": "55",
            "soilhum1": "31",
            "soilmoisture2": "42",
            "soilhum2": "99",
        }
    )

    assert reading.humidity == 55.0
    assert reading.soil_moisture_1 == 31.0
    assert reading.soil_moisture_2 == 42.0


def test_flat_leaf_wetness_priority() -> None:
    assert _flat({"leafwet_ch1": "10", "leafwetness1": "20"}).leaf_wetness == 20.0
    assert _flat({"leafwetness_ch1": "5", "leafwetness1": "20"}).leaf_wetness == 5.0


def test_flat_zero_is_a_present_value() -> None:
    reading = _flat({"soilmoisture1": "0", "tempf": "32"})

    assert reading.soil_moisture_1 == 0.0
    assert reading.temperature == 0.0
    assert reading.has_metrics


def test_flat_values_are_not_rounded() -> None:
    assert _flat({"soilmoisture1": "33.456"}).soil_moisture_1 == 33.456


def test_flat_metadata_defaults_and_precedence() -> None:
    empty = _flat({})
    assert empty.station_type == UNKNOWN
    assert empty.passkey == UNKNOWN
    assert empty.source_device_time is None

    reading = _flat(
        {
            "stationtype": "GW1200B_V1.3.1",
            "passkey": "lower",
            "ID": "station-id",
            "PASSKEY": "ABC123",
            "dateutc": "2024-06-01 11:59:30",
        }
    )
    assert reading.station_type == "GW1200B_V1.3.1"
    assert reading.passkey == "ABC123"
    assert reading.source_device_time == "2024-06-01 11:59:30"

    assert _flat({"ID": "station-id"}).passkey == "station-id"


def test_raw_payload_is_retained_read_only() -> None:
    payload = {"tempf": "68", "model": "WH51L"}
    reading = _flat(payload)
    payload["tempf"] = "100"

    assert reading.raw["tempf"] == "68"
    with pytest.raises(TypeError):
        reading.raw["tempf"] = "0"  # type: ignore[index]


def test_nested_outdoor_temperature_rounded_without_conversion() -> None:
    reading = _nested({"outdoor": {"temperature": {"value": "72.34", "unit": "℃"}}})

    assert reading.temperature == 72.3


def test_nested_indoor_used_when_outdoor_missing() -> None:
    reading = _nested(
        {
            "outdoor": {"humidity": {"value": "61"}},
            "indoor": {
                "temperature": {"value": "21.06", "time": "1717243170"},
                "humidity": {"value": "40"},
            },
        }
    )

    assert reading.temperature == 21.1
    assert reading.humidity == 61.0
    assert reading.source_device_time == "1717243170"


def test_nested_soil_channels_as_objects() -> None:
    reading = _nested(
        {
            "soil_ch1": {"soilmoisture": {"value": "35.25", "unit": "%"}},
            "soil_ch2": {"soilmoisture": {"value": "0"}},
        }
    )

    assert reading.soil_moisture_1 == 35.2
    assert reading.soil_moisture_2 == 0.0


def test_nested_soil_channels_as_array() -> None:
    reading = _nested(
        {
            "soil": [
                {"soilmoisture": {"value": "28.1"}},
                {"value": "47.77"},
            ]
        }
    )

    assert reading.soil_moisture_1 == 28.1
    assert reading.soil_moisture_2 == 47.8


def test_nested_leaf_wetness_forms() -> None:
    by_channel = _nested({"leaf_ch1": {"leaf_wetness": {"value": "12"}}})
    by_array = _nested({"leaf": [{"leaf_wetness": {"value": "88.8"}}, {"value": "1"}]})

    assert by_channel.leaf_wetness == 12.0
    assert by_array.leaf_wetness == 88.8


def test_nested_missing_or_malformed_values_are_absent() -> None:
    reading = _nested(
        {
            "outdoor": {"temperature": {"value": "--"}},
            "soil_ch1": "not-a-mapping",
            "soil": [],
            "leaf": {"value": "3"},
        }
    )

    assert reading.temperature is None
    assert reading.soil_moisture_1 is None
    assert reading.soil_moisture_2 is None
    assert reading.leaf_wetness is None
    assert not reading.has_metrics


def test_oversized_integer_falls_through_to_next_rule() -> None:
    reading = _flat({"tempf": 10**400, "temp": "18"})

    assert reading.temperature == 18.0


def test_nested_oversized_integer_is_absent() -> None:
    reading = _nested({"outdoor": {"temperature": {"value": 10**400}}})

    assert reading.temperature is None


def test_humidity_alone_does_not_make_a_reading_storable() -> None:
    assert not _flat({"humidity": "50"}).has_metrics
