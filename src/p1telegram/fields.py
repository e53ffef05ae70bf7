"""
Map OBIS reference codes to the fields of a parsed telegram.

The table is fixed: to support another code, add an entry to FIELD_TABLE.
Codes not in the table are ignored, unless strict mode is requested.

        This program is free software: you can redistribute it and/or modify
        it under the terms of the GNU General Public License as published by
        the Free Software Foundation, either version 3 of the License, or
        (at your option) any later version.

        This program is distributed in the hope that it will be useful,
        but WITHOUT ANY WARRANTY; without even the implied warranty of
        MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
        GNU General Public License for more details.

        You should have received a copy of the GNU General Public License
        along with this program.  If not, see <http://www.gnu.org/licenses/>.
"""

from enum import Enum

from p1telegram.errors import (
    InvalidFieldValue,
    InvalidTimestamp,
    MissingRequiredField,
    UnrecognizedField,
)
from p1telegram.obis import UNIT_SEPARATOR


class Slot(Enum):
    """Semantic field of a telegram; the value is the name used in errors."""

    TIMESTAMP = "timestamp"
    IMPORT_T1 = "power.import.t1"
    IMPORT_T2 = "power.import.t2"
    ACTIVE_POWER = "power.import.active"
    GAS_TIMESTAMP = "gas.timestamp"
    GAS_VALUE = "gas.value"

    @property
    def is_timestamp(self) -> bool:
        return self in (Slot.TIMESTAMP, Slot.GAS_TIMESTAMP)


# reference code --> slot(s) filled from that line
FIELD_TABLE = {
    "0-0:1.0.0": (Slot.TIMESTAMP,),
    "1-0:1.8.1": (Slot.IMPORT_T1,),
    "1-0:1.8.2": (Slot.IMPORT_T2,),
    "1-0:1.7.0": (Slot.ACTIVE_POWER,),
    # DSMR 5: 0-1:24.2.1(230615120000S)(01234.567*m3)
    "0-1:24.2.1": (Slot.GAS_TIMESTAMP, Slot.GAS_VALUE),
    # Belgian e-MUCS meters report gas on a different code
    "0-1:24.2.3": (Slot.GAS_TIMESTAMP, Slot.GAS_VALUE),
}

REQUIRED_SLOTS = tuple(Slot)


def _extract(slot: Slot, line):
    if slot.is_timestamp:
        if line.raw_timestamp is not None:
            return line.raw_timestamp
        # Any group without a unit is where the timestamp should have been
        malformed = next((g for g in line.groups if UNIT_SEPARATOR not in g), None)
        if malformed is not None:
            raise InvalidTimestamp(malformed, f"not a compact timestamp ({line.reference})")
        return None

    if line.values:
        # Prefer a value with a unit over a bare number
        return next((v for v in line.values if v.unit), line.values[0])
    if line.texts:
        raise InvalidFieldValue(line.reference, line.texts[0])
    return None


def map_fields(obis_lines, strict: bool = False) -> dict:
    """
    Pick the known fields out of the decoded OBIS lines.

    Timestamps are returned as raw compact strings, numeric fields as ObisValue.
    If a code occurs more than once the first occurrence is used.

    Args:
      :param list obis_lines: ObisLine objects in telegram order
      :param bool strict: fail on reference codes not in FIELD_TABLE

    Returns:
      dict Slot --> raw timestamp str | ObisValue, containing every slot

    Raises:
      InvalidFieldValue: a known value field without a numeric value
      InvalidTimestamp: a known timestamp field with a malformed timestamp
      MissingRequiredField: lists every required slot that was not found
      UnrecognizedField: strict mode only, lists every unknown code
    """
    found = {}
    unknown = []

    for line in obis_lines:
        slots = FIELD_TABLE.get(line.reference)
        if slots is None:
            if line.reference not in unknown:
                unknown.append(line.reference)
            continue

        for slot in slots:
            if slot in found:
                continue
            value = _extract(slot, line)
            if value is not None:
                found[slot] = value

    missing = [slot.value for slot in REQUIRED_SLOTS if slot not in found]
    if missing:
        raise MissingRequiredField(missing)

    if strict and unknown:
        raise UnrecognizedField(unknown)

    return found
