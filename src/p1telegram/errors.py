"""
Parse errors raised by the telegram parser.

Every failure is terminal: a telegram either parses completely or raises
exactly one of the errors below. Each error carries the context needed to
log a precise diagnosis without re-parsing the input.

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


class ParseError(Exception):
    """Base class of all telegram parse failures."""

    kind = "parse_error"

    def context(self) -> dict:
        """Structured fields describing the failure, for log events."""
        return {"error_kind": self.kind, "error": str(self)}


class MalformedFrame(ParseError):
    kind = "malformed_frame"


class TruncatedFrame(ParseError):
    kind = "truncated_frame"


class ChecksumMismatch(ParseError):
    kind = "checksum_mismatch"

    def __init__(self, expected: str, computed: str):
        super().__init__(f"Checksum mismatch: telegram declares {expected}, computed {computed}")
        self.expected = expected
        self.computed = computed

    def context(self) -> dict:
        return {**super().context(), "expected": self.expected, "computed": self.computed}


class InvalidFieldValue(ParseError):
    kind = "invalid_field_value"

    def __init__(self, reference: str, value: str):
        super().__init__(f"Invalid value {value!r} for OBIS reference {reference}")
        self.reference = reference
        self.value = value

    def context(self) -> dict:
        return {**super().context(), "reference": self.reference, "value": self.value}


class MissingRequiredField(ParseError):
    kind = "missing_required_field"

    def __init__(self, fields):
        self.fields = tuple(fields)
        super().__init__(f"Telegram is missing required field(s): {', '.join(self.fields)}")

    def context(self) -> dict:
        return {**super().context(), "fields": list(self.fields)}


class InvalidTimestamp(ParseError):
    kind = "invalid_timestamp"

    def __init__(self, value: str, reason: str):
        super().__init__(f"Invalid timestamp {value!r}: {reason}")
        self.value = value
        self.reason = reason

    def context(self) -> dict:
        return {**super().context(), "value": self.value, "reason": self.reason}


class UnrecognizedField(ParseError):
    """Only raised in strict mode, for OBIS codes missing from the field table."""

    kind = "unrecognized_field"

    def __init__(self, references):
        self.references = tuple(references)
        super().__init__(f"Unrecognized OBIS reference(s): {', '.join(self.references)}")

    def context(self) -> dict:
        return {**super().context(), "references": list(self.references)}
