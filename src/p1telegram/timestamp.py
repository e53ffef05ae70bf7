"""
Convert DSMR compact timestamps to UTC.

The meter reports local civil time as YYMMDDhhmmssX where X is "S" when
daylight saving (summer) time is in effect and "W" for standard (winter)
time. The indicator decides the UTC offset. It is never recomputed from the
date: during the autumn transition the same local hour occurs twice, and the
meter is the only party that knows which one it meant.

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
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

from p1telegram.errors import InvalidTimestamp

SUMMER_TIME = "S"
WINTER_TIME = "W"

# Used when the zone has no DST rule of its own to borrow the shift from
DEFAULT_DST_SHIFT = timedelta(hours=1)

_COMPACT = re.compile(r"(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})(\d{2})(.)")


@lru_cache(maxsize=16)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def _resolve_zone(home_timezone) -> tzinfo:
    if isinstance(home_timezone, tzinfo):
        return home_timezone
    return _zone(home_timezone)


def _utc_offset(local: datetime, zone: tzinfo, summer: bool) -> timedelta:
    """
    UTC offset of *local* in *zone* for the given DST state.

    Both folds are tried first, which covers regular days as well as the
    doubled autumn hour and the skipped spring hour. When the indicator
    contradicts the zone rules altogether the offset is derived from the
    zone's standard offset.
    """
    candidates = [local.replace(tzinfo=zone, fold=fold) for fold in (0, 1)]
    for candidate in candidates:
        if bool(candidate.dst()) == summer:
            return candidate.utcoffset()

    standard = candidates[0].utcoffset() - (candidates[0].dst() or timedelta(0))
    if not summer:
        return standard
    shift = next((c.dst() for c in candidates if c.dst()), None) or DEFAULT_DST_SHIFT
    return standard + shift


def normalize_timestamp(compact: str, home_timezone) -> datetime:
    """
    Parse a compact DSMR timestamp and return it as an aware UTC datetime.

    Args:
      :param str compact: timestamp as sent by the meter, e.g. "230615120000S"
      :param str|tzinfo home_timezone: IANA zone of the meter, e.g. "Europe/Amsterdam"

    Returns:
      datetime with tzinfo=timezone.utc

    Raises:
      InvalidTimestamp: malformed digits, impossible date/time or unknown DST indicator
      zoneinfo.ZoneInfoNotFoundError: home_timezone is not a known zone
    """
    match = _COMPACT.fullmatch(compact or "")
    if match is None:
        raise InvalidTimestamp(compact, "expected YYMMDDhhmmss followed by S or W")

    yy, month, day, hour, minute, second, indicator = match.groups()
    if indicator not in (SUMMER_TIME, WINTER_TIME):
        raise InvalidTimestamp(compact, f"unknown daylight saving indicator {indicator!r}")

    try:
        local = datetime(
            2000 + int(yy), int(month), int(day), int(hour), int(minute), int(second)
        )
    except ValueError as e:
        raise InvalidTimestamp(compact, str(e)) from e

    offset = _utc_offset(local, _resolve_zone(home_timezone), indicator == SUMMER_TIME)
    return (local - offset).replace(tzinfo=timezone.utc)
