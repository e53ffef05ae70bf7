"""
Shared test fixtures: telegram builders with a correct CRC16.

The checksum is computed with a bitwise CRC-16/ARC implementation kept
here, independent of the table driven one under test.
"""

import pytest

HEADER = r"ISk5\2MT382-1000"

STANDARD_LINES = (
    "1-3:0.2.8(50)",
    "0-0:1.0.0(230615120000S)",
    "0-0:96.1.1(4B384547303034303436333935353037)",
    "1-0:1.8.1(001234.567*kWh)",
    "1-0:1.8.2(002345.678*kWh)",
    "1-0:2.8.1(000000.000*kWh)",
    "1-0:2.8.2(000000.000*kWh)",
    "0-0:96.14.0(0002)",
    "1-0:1.7.0(00.345*kW)",
    "1-0:2.7.0(00.000*kW)",
    "0-0:96.7.21(00004)",
    "1-0:99.97.0(2)(0-0:96.7.19)(101208152415W)(0000000240*s)(101208151004W)(0000000301*s)",
    "0-0:96.13.0()",
    "0-1:24.1.0(003)",
    "0-1:96.1.0(3232323241424344313233343536373839)",
    "0-1:24.2.1(230615120000S)(01234.567*m3)",
)


def _crc16_arc(data: bytes) -> int:
    crc = 0x0000
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ 0xA001
            else:
                crc >>= 1
    return crc


def _build(lines=STANDARD_LINES, header=HEADER, checksum=None) -> str:
    body = "/" + header + "\r\n\r\n" + "".join(line + "\r\n" for line in lines) + "!"
    if checksum is None:
        checksum = f"{_crc16_arc(body.encode('ascii')):04X}"
    return body + checksum + "\r\n"


@pytest.fixture()
def reference_crc16():
    """Bitwise CRC-16/ARC, for cross checking."""
    return _crc16_arc


@pytest.fixture()
def build_telegram():
    """Return a builder: build_telegram(lines=..., header=..., checksum=None) -> str."""
    return _build


@pytest.fixture()
def standard_lines() -> list:
    """Data lines of a complete DSMR 5 telegram, as a mutable copy."""
    return list(STANDARD_LINES)


@pytest.fixture()
def standard_telegram() -> str:
    """A complete DSMR 5 telegram with a valid checksum."""
    return _build()
