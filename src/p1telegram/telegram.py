"""
Parse a DSMR P1 telegram into a validated, UTC-normalized reading.

  raw text --> tokenize --> checksum --> OBIS lines --> field table --> UTC timestamps

The parser is a pure function: no I/O, no clock, no state between calls.
Any failure raises a ParseError subclass and no partial result is returned.

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

from dataclasses import dataclass
from datetime import datetime

from p1telegram import checksum, config as cfg, obis, tokenizer
from p1telegram.fields import Slot, map_fields
from p1telegram.log import logger
from p1telegram.timestamp import normalize_timestamp


@dataclass(frozen=True)
class Measurement:
    value: float
    unit: str

    def as_dict(self) -> dict:
        return {"value": self.value, "unit": self.unit}


@dataclass(frozen=True)
class PowerImport:
    t1: Measurement
    t2: Measurement
    active: Measurement


@dataclass(frozen=True)
class Power:
    import_: PowerImport


@dataclass(frozen=True)
class Gas:
    timestamp: datetime
    value: float
    unit: str


@dataclass(frozen=True)
class ParsedTelegram:
    """A checksum-verified telegram; all timestamps are aware UTC datetimes."""

    timestamp: datetime
    power: Power
    gas: Gas
    header: str = ""

    def as_dict(self) -> dict:
        """Nested JSON-able representation, timestamps as ISO 8601 strings."""
        power_import = self.power.import_
        return {
            "timestamp": self.timestamp.isoformat(),
            "power": {
                "import": {
                    "t1": power_import.t1.as_dict(),
                    "t2": power_import.t2.as_dict(),
                    "active": power_import.active.as_dict(),
                }
            },
            "gas": {
                "timestamp": self.gas.timestamp.isoformat(),
                "value": self.gas.value,
                "unit": self.gas.unit,
            },
        }


def _measurement(obis_value) -> Measurement:
    return Measurement(value=obis_value.value, unit=obis_value.unit)


def parse_telegram(raw, home_timezone=None, strict: bool = False) -> ParsedTelegram:
    """
    Parse one complete telegram.

    Args:
      :param str|bytes raw: the telegram, from "/" through the checksum
      :param str|tzinfo home_timezone: zone the meter clock runs in;
        defaults to config HOME_TIMEZONE
      :param bool strict: fail on OBIS codes that are not in the field table

    Returns:
      ParsedTelegram

    Raises:
      ParseError: MalformedFrame, TruncatedFrame, ChecksumMismatch, InvalidFieldValue,
        MissingRequiredField, InvalidTimestamp or UnrecognizedField
    """
    if home_timezone is None:
        home_timezone = cfg.HOME_TIMEZONE

    frame = tokenizer.tokenize(raw)
    checksum.validate(frame)

    obis_lines = obis.parse_lines(frame.lines)
    logger.debug(
        "telegram_tokenized",
        header=frame.header,
        lines=len(frame.lines),
        obis_lines=len(obis_lines),
    )

    fields = map_fields(obis_lines, strict=strict)
    gas_value = fields[Slot.GAS_VALUE]

    return ParsedTelegram(
        timestamp=normalize_timestamp(fields[Slot.TIMESTAMP], home_timezone),
        power=Power(
            import_=PowerImport(
                t1=_measurement(fields[Slot.IMPORT_T1]),
                t2=_measurement(fields[Slot.IMPORT_T2]),
                active=_measurement(fields[Slot.ACTIVE_POWER]),
            )
        ),
        gas=Gas(
            timestamp=normalize_timestamp(fields[Slot.GAS_TIMESTAMP], home_timezone),
            value=gas_value.value,
            unit=gas_value.unit,
        ),
        header=frame.header,
    )
