"""
CRC16 checksum of a DSMR telegram.

DSMR 4.0 and later close every telegram with "!" followed by four hex digits:
the CRC16 (polynomial x16+x15+x2+1, bit-reflected as 0xA001, initial value 0)
over all bytes from the leading "/" up to and including the "!".

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

import crcmod.predefined

from p1telegram.errors import ChecksumMismatch

# crcmod "crc16" is CRC-16/ARC: poly 0x8005 reflected, init 0x0000, no final xor
_crc16 = crcmod.predefined.mkPredefinedCrcFun("crc16")


def crc16(data: bytes) -> int:
    """Return the 16-bit CRC of *data*."""
    return _crc16(data)


def format_checksum(value: int) -> str:
    """Render a CRC as the four uppercase hex digits used in telegrams."""
    return f"{value:04X}"


def validate(frame) -> None:
    """
    Check the checksum declared in a tokenized telegram.

    Args:
      :param TelegramFrame frame: output of tokenizer.tokenize()

    Raises:
      ChecksumMismatch: when the computed CRC differs from the declared one
    """
    computed = format_checksum(crc16(frame.checksum_span))
    if computed != frame.checksum:
        raise ChecksumMismatch(expected=frame.checksum, computed=computed)
