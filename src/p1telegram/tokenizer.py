"""
Split a raw DSMR telegram into its lines.

A telegram looks like:

  /ISk5\\2MT382-1000
  <blank line>
  0-0:1.0.0(230615120000S)
  1-0:1.8.1(001234.567*kWh)
  ...
  !1E2F

The header starts with "/", the footer is "!" directly followed by the
CRC16 in four hex digits. Lines are terminated by CR LF.

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
from dataclasses import dataclass

from p1telegram.errors import MalformedFrame, TruncatedFrame

START_MARKER = "/"
END_MARKER = "!"

_CHECKSUM = re.compile(r"[0-9A-Fa-f]{4}")


@dataclass(frozen=True)
class TelegramFrame:
    """
    A telegram split into lines, with the byte span the checksum covers.

    header        -- device identification, the text after "/"
    lines         -- data lines between header and footer, blank lines removed
    checksum_span -- bytes from "/" up to and including "!"
    checksum      -- declared checksum, four uppercase hex digits
    """

    header: str
    lines: tuple
    checksum_span: bytes
    checksum: str


def _single_marker(text: str, marker: str, name: str) -> int:
    count = text.count(marker)
    if count == 0:
        raise MalformedFrame(f"Telegram has no {name} marker {marker!r}")
    if count > 1:
        raise MalformedFrame(f"Telegram has {count} {name} markers {marker!r}, expected one")
    return text.index(marker)


def tokenize(raw) -> TelegramFrame:
    """
    Locate the start and end markers and split the telegram into lines.

    Args:
      :param str|bytes raw: one complete telegram as received

    Returns:
      TelegramFrame

    Raises:
      MalformedFrame: not ASCII, or start or end marker missing, duplicated or misordered
      TruncatedFrame: checksum after "!" missing or not hexadecimal
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            text = bytes(raw).decode("ascii")
        except UnicodeDecodeError as e:
            bad = e.object[e.start]
            raise MalformedFrame(f"Telegram is not ASCII: byte {bad:#04x} at offset {e.start}") from e
    elif raw.isascii():
        text = raw
    else:
        raise MalformedFrame("Telegram is not ASCII")

    start = _single_marker(text, START_MARKER, "start")
    end = _single_marker(text, END_MARKER, "end")
    if end < start:
        raise MalformedFrame("Telegram end marker '!' precedes start marker '/'")

    # The checksum follows "!" directly; only a line terminator may come after it
    checksum = text[end + 1 :].rstrip()
    if not checksum:
        raise TruncatedFrame("Telegram has no checksum after end marker '!'")
    if not _CHECKSUM.fullmatch(checksum):
        raise TruncatedFrame(f"Telegram checksum {checksum[:16]!r} is not four hex digits")

    span = text[start : end + 1].encode("ascii")

    body = text[start + 1 : end].splitlines()
    header = body[0].strip() if body else ""
    lines = tuple(line.strip() for line in body[1:] if line.strip())

    return TelegramFrame(
        header=header,
        lines=lines,
        checksum_span=span,
        checksum=checksum.upper(),
    )
