"""
P1TELEGRAM - DSMR smart meter telegram parser.

Turns raw P1 telegrams into checksum-verified readings with UTC timestamps,
and optionally publishes them to an MQTT broker.
"""

__version__ = "1.0.0"
__license__ = "GPLv3"

from p1telegram.errors import (  # noqa: E402
    ChecksumMismatch,
    InvalidFieldValue,
    InvalidTimestamp,
    MalformedFrame,
    MissingRequiredField,
    ParseError,
    TruncatedFrame,
    UnrecognizedField,
)
from p1telegram.telegram import ParsedTelegram, parse_telegram  # noqa: E402
from p1telegram.timestamp import normalize_timestamp  # noqa: E402

__all__ = [
    "__version__",
    "parse_telegram",
    "normalize_timestamp",
    "ParsedTelegram",
    "ParseError",
    "MalformedFrame",
    "TruncatedFrame",
    "ChecksumMismatch",
    "InvalidFieldValue",
    "MissingRequiredField",
    "InvalidTimestamp",
    "UnrecognizedField",
]
