# backend/metrics_seed/services/pgcopy.py

"""
Encoder for the PostgreSQL binary COPY format (`COPY ... FROM STDIN WITH BINARY`).

Layout:
- 11-byte signature, int32 flags (0), int32 header extension length (0)
- per tuple: int16 field count, then per field an int32 byte length + payload
- int16 trailer (-1)

Field payloads used by the metrics table:
- timestamptz: int64 microseconds since 2000-01-01 00:00:00 UTC
- int4: int32
- numeric: int16 ndigits, weight, sign, dscale, then ndigits base-10000 int16 groups
"""

from __future__ import annotations

import struct
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Tuple, Union

from metrics_seed.services.generator import MetricRow

PGCOPY_SIGNATURE = b"PGCOPY\n\xff\r\n\x00"
POSTGRES_EPOCH = datetime(2000, 1, 1, tzinfo=timezone.utc)

NUMERIC_POS = 0x0000
NUMERIC_NEG = 0x4000

_HEADER = PGCOPY_SIGNATURE + struct.pack("!ii", 0, 0)
_TRAILER = struct.pack("!h", -1)


def timestamp_to_micros(value: datetime) -> int:
    """Microseconds between `value` and the Postgres epoch (naive values are treated as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - POSTGRES_EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def numeric_to_binary(value: Union[Decimal, float, int, str]) -> bytes:
    """Encode a finite number as a Postgres `numeric` binary payload."""
    dec = value if isinstance(value, Decimal) else Decimal(str(value))
    if not dec.is_finite():
        raise ValueError(f"cannot encode non-finite numeric {dec!r}")

    sign_bit, digit_tuple, exponent = dec.as_tuple()
    sign = NUMERIC_NEG if sign_bit else NUMERIC_POS
    dscale = max(0, -exponent)

    digits = "".join(str(d) for d in digit_tuple)
    if exponent > 0:
        digits += "0" * exponent
        int_part, frac_part = digits, ""
    elif dscale >= len(digits):
        int_part, frac_part = "", digits.rjust(dscale, "0")
    else:
        int_part, frac_part = digits[: len(digits) - dscale], digits[len(digits) - dscale :]

    int_part = int_part.lstrip("0")
    # Align both sides to 4-digit groups around the decimal point.
    if int_part:
        int_part = int_part.rjust(-(-len(int_part) // 4) * 4, "0")
    if frac_part:
        frac_part = frac_part.ljust(-(-len(frac_part) // 4) * 4, "0")

    groups = [int(int_part[i : i + 4]) for i in range(0, len(int_part), 4)]
    groups += [int(frac_part[i : i + 4]) for i in range(0, len(frac_part), 4)]
    weight = len(int_part) // 4 - 1

    # Strip leading zero groups (shifting the weight) and trailing zero groups.
    while groups and groups[0] == 0:
        groups.pop(0)
        weight -= 1
    while groups and groups[-1] == 0:
        groups.pop()

    if not groups:
        # Zero: no digit groups, weight 0, always positive.
        return struct.pack("!hhHh", 0, 0, NUMERIC_POS, dscale)

    header = struct.pack("!hhHh", len(groups), weight, sign, dscale)
    return header + struct.pack(f"!{len(groups)}h", *groups)


def _field(payload: bytes) -> bytes:
    return struct.pack("!i", len(payload)) + payload


def encode_row(row: Union[MetricRow, Tuple[datetime, int, Decimal]]) -> bytes:
    if isinstance(row, MetricRow):
        created, sensor_id, temperature = row.created, row.sensor_id, row.temperature
    else:
        created, sensor_id, temperature = row

    parts: List[bytes] = [
        struct.pack("!h", 3),
        _field(struct.pack("!q", timestamp_to_micros(created))),
        _field(struct.pack("!i", sensor_id)),
        _field(numeric_to_binary(temperature)),
    ]
    return b"".join(parts)


def encode_rows(rows: Iterable[Union[MetricRow, Tuple[datetime, int, Decimal]]]) -> bytes:
    """Full COPY BINARY stream (header, tuples, trailer) for `rows`."""
    chunks = [_HEADER]
    chunks.extend(encode_row(row) for row in rows)
    chunks.append(_TRAILER)
    return b"".join(chunks)
