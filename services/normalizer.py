"""Map gateway payloads onto the canonical :class:`Reading` shape.

Push gateways (Ecowitt "customized" upload, Wunderground protocol) send a flat
mapping of string keys to scalars. The Ecowitt cloud API returns a nested
mapping of ``category -> channel -> {"value", "unit"}`` records. Each metric is
resolved by an ordered chain of named extraction rules; the first rule that
yields a usable number wins.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from models.records import UNKNOWN, PayloadShape, Reading


Payload = Mapping[str, Any]


@dataclass(frozen=True)
class ExtractionRule:
    """A named, pure lookup from a raw payload to an optional float."""

    name: str
    extract: Callable[[Payload], Optional[float]]

    def __call__(self, payload: Payload) -> Optional[float]:
        return self.extract(payload)


def parse_number(value: Any) -> Optional[float]:
    """Parse a wire value into a finite float, or ``None`` when unusable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        candidate: Any = value.strip()
        if not candidate:
            return None
    elif isinstance(value, (int, float)):
        candidate = value
    else:
        return None
    try:
        parsed = float(candidate)
    except (ValueError, OverflowError):
        return None
    return parsed if math.isfinite(parsed) else None


def fahrenheit_to_celsius(value: float) -> float:
    return (value - 32) * 5 / 9


def resolve(rules: Sequence[ExtractionRule], payload: Payload) -> Optional[float]:
    for rule in rules:
        value = rule(payload)
        if value is not None:
            return value
    return None


# -- flat payloads -----------------------------------------------------------


def _flat(key: str) -> ExtractionRule:
    return ExtractionRule(key, lambda payload: parse_number(payload.get(key)))


def _flat_fahrenheit(key: str) -> ExtractionRule:
    def extract(payload: Payload) -> Optional[float]:
        value = parse_number(payload.get(key))
        return None if value is None else fahrenheit_to_celsius(value)

    return ExtractionRule(f"{key} (F->C)", extract)


FLAT_TEMPERATURE_RULES = (
    _flat_fahrenheit("tempf"),
    _flat_fahrenheit("temp1f"),
    _flat_fahrenheit("tempinf"),
    _flat("temp"),
)
FLAT_HUMIDITY_RULES = (_flat("humidity"), _flat("humidity1"), _flat("humidityin"))
FLAT_SOIL_RULES = {
    channel: (_flat(f"soilmoisture{channel}"), _flat(f"soilhum{channel}"))
    for channel in (1, 2)
}
FLAT_LEAF_WETNESS_RULES = (
    _flat("leafwetness_ch1"),
    _flat("leafwetness1"),
    _flat("leafwet_ch1"),
)


def _first_text(payload: Payload, keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def normalize_flat(payload: Payload, timestamp: datetime) -> Reading:
    return Reading(
        timestamp=timestamp,
        temperature=resolve(FLAT_TEMPERATURE_RULES, payload),
        humidity=resolve(FLAT_HUMIDITY_RULES, payload),
        soil_moisture_1=resolve(FLAT_SOIL_RULES[1], payload),
        soil_moisture_2=resolve(FLAT_SOIL_RULES[2], payload),
        leaf_wetness=resolve(FLAT_LEAF_WETNESS_RULES, payload),
        station_type=_first_text(payload, ("stationtype",)) or UNKNOWN,
        passkey=_first_text(payload, ("PASSKEY", "passkey", "ID")) or UNKNOWN,
        source_device_time=_first_text(payload, ("dateutc",)),
        raw=payload,
    )


# -- nested payloads ---------------------------------------------------------


def dig(payload: Any, *path: Any) -> Any:
    """Follow mapping keys and list indexes, returning ``None`` on any miss."""
    current = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, (list, tuple)) or not 0 <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, Mapping):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def _rounded(value: Any) -> Optional[float]:
    parsed = parse_number(value)
    return None if parsed is None else round(parsed, 1)


def _nested(*path: Any) -> ExtractionRule:
    name = ".".join(f"[{step}]" if isinstance(step, int) else step for step in path)
    return ExtractionRule(name, lambda payload: _rounded(dig(payload, *path)))


def _channel_entry(array_key: str, index: int, record_key: str) -> ExtractionRule:
    """Array form: element ``index`` is ``{record_key: {value}}`` or ``{value}``."""

    def extract(payload: Payload) -> Optional[float]:
        entry = dig(payload, array_key, index)
        value = dig(entry, record_key, "value")
        if value is None:
            value = dig(entry, "value")
        return _rounded(value)

    return ExtractionRule(f"{array_key}[{index}]", extract)


NESTED_TEMPERATURE_RULES = (
    _nested("outdoor", "temperature", "value"),
    _nested("indoor", "temperature", "value"),
)
NESTED_HUMIDITY_RULES = (
    _nested("outdoor", "humidity", "value"),
    _nested("indoor", "humidity", "value"),
)
NESTED_SOIL_RULES = {
    channel: (
        _nested(f"soil_ch{channel}", "soilmoisture", "value"),
        _channel_entry("soil", channel - 1, "soilmoisture"),
    )
    for channel in (1, 2)
}
NESTED_LEAF_WETNESS_RULES = (
    _nested("leaf_ch1", "leaf_wetness", "value"),
    _channel_entry("leaf", 0, "leaf_wetness"),
)


def _nested_device_time(payload: Payload) -> Optional[str]:
    for category in ("outdoor", "indoor"):
        value = dig(payload, category, "temperature", "time")
        if value is not None:
            return str(value)
    return None


def normalize_nested(payload: Payload, timestamp: datetime) -> Reading:
    return Reading(
        timestamp=timestamp,
        temperature=resolve(NESTED_TEMPERATURE_RULES, payload),
        humidity=resolve(NESTED_HUMIDITY_RULES, payload),
        soil_moisture_1=resolve(NESTED_SOIL_RULES[1], payload),
        soil_moisture_2=resolve(NESTED_SOIL_RULES[2], payload),
        leaf_wetness=resolve(NESTED_LEAF_WETNESS_RULES, payload),
        station_type=_first_text(payload, ("stationtype",)) or UNKNOWN,
        passkey=_first_text(payload, ("passkey",)) or UNKNOWN,
        source_device_time=_nested_device_time(payload),
        raw=payload,
    )


_NORMALIZERS: dict[PayloadShape, Callable[[Payload, datetime], Reading]] = {
    PayloadShape.flat: normalize_flat,
    PayloadShape.nested: normalize_nested,
}


def normalize(payload: Payload, shape: PayloadShape, timestamp: datetime) -> Reading:
    """Build a canonical reading from ``payload`` stamped with ``timestamp``."""
    return _NORMALIZERS[PayloadShape(shape)](payload, timestamp)
