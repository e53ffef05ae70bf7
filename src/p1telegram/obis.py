"""
Decode DSMR data lines into OBIS reference code and value groups.

  1-0:1.8.1(001234.567*kWh)                 -> 1-0:1.8.1, [(1234.567, "kWh")]
  0-0:1.0.0(230615120000S)                  -> 0-0:1.0.0, timestamp 230615120000S
  0-1:24.2.1(230615120000S)(01234.567*m3)   -> 0-1:24.2.1, timestamp + [(1234.567, "m3")]
  0-0:96.1.1(4530303034303031)              -> 0-0:96.1.1, text 4530303034303031

Lines that are not OBIS lines are skipped. A value group with a unit must be
an unsigned decimal number; anything else is data corruption.

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

import re
from dataclasses import dataclass, field
from typing import Optional

from p1telegram.errors import InvalidFieldValue

_OBIS_LINE = re.compile(r"(?P<reference>\d+-\d+:\d+\.\d+\.\d+)(?P<groups>(?:\([^()]*\))+)")
_GROUP = re.compile(r"\(([^()]*)\)")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_TIMESTAMP = re.compile(r"\d{12}[SW]")

UNIT_SEPARATOR = "*"


@dataclass(frozen=True)
class ObisValue:
    value: float
    unit: str


@dataclass(frozen=True)
class ObisLine:
    """
    One decoded data line.

    values        -- numeric groups in line order; unit is "" for bare numbers
    raw_timestamp -- first compact timestamp group, if any
    texts         -- remaining groups kept verbatim (identifiers, nested codes)
    groups        -- every group as sent, in line order
    """

    reference: str
    values: tuple = ()
    raw_timestamp: Optional[str] = None
    texts: tuple = ()
    groups: tuple = field(default=(), compare=False)


def parse_line(line: str) -> Optional[ObisLine]:
    """
    Decode a single data line.

    Returns:
      ObisLine, or None if the line is not an OBIS line

    Raises:
      InvalidFieldValue: a value*unit group has a non numeric value
    """
    match = _OBIS_LINE.fullmatch(line.strip())
    if match is None:
        return None

    reference = match.group("reference")
    groups = tuple(_GROUP.findall(match.group("groups")))
    values = []
    texts = []
    raw_timestamp = None

    for group in groups:
        if UNIT_SEPARATOR in group:
            value, unit = group.split(UNIT_SEPARATOR, 1)
            if not _NUMBER.fullmatch(value):
                raise InvalidFieldValue(reference, value)
            values.append(ObisValue(float(value), unit))
        elif _TIMESTAMP.fullmatch(group):
            if raw_timestamp is None:
                raw_timestamp = group
        elif _NUMBER.fullmatch(group):
            values.append(ObisValue(float(group), ""))
        else:
            texts.append(group)

    return ObisLine(
        reference=reference,
        values=tuple(values),
        raw_timestamp=raw_timestamp,
        texts=tuple(texts),
        groups=groups,
    )


def parse_lines(lines) -> list:
    """Decode all OBIS lines of a telegram, in order, skipping anything else."""
    parsed = []
    for line in lines:
        obis_line = parse_line(line)
        if obis_line is not None:
            parsed.append(obis_line)
    return parsed
