"""
Storage rows derived from a parsed telegram.

Three shapes are published per telegram:
  telegram -- combined power and gas row, always
  power    -- power only, sampled at a fixed cadence
  gas      -- gas only, once per gas meter reading

The gas meter reports a new value every 5 minutes (DSMR 5) or every hour
(DSMR 4) while the electricity meter sends a telegram every second, so the
same gas reading arrives many times in a row.

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

import threading
from collections import OrderedDict


def power_row(telegram) -> dict:
    power_import = telegram.power.import_
    return {
        "power_timestamp": telegram.timestamp.isoformat(),
        "power_t1": power_import.t1.value,
        "power_t2": power_import.t2.value,
        "power_total": power_import.t1.value + power_import.t2.value,
        "power_active": power_import.active.value,
    }


def gas_row(telegram) -> dict:
    return {
        "gas_timestamp": telegram.gas.timestamp.isoformat(),
        "gas_value": telegram.gas.value,
    }


def telegram_row(telegram) -> dict:
    """Combined row with every power and gas column."""
    return {**power_row(telegram), **gas_row(telegram)}


class PowerSampler:
    """
    Storage cadence for power rows.

    A telegram is accepted when the minute of its timestamp is a multiple of
    the interval. Every telegram within such a minute qualifies; at one
    telegram per second that is up to 60 rows, which is what the consumer
    (a time series table keyed on timestamp) expects.
    """

    def __init__(self, interval_minutes: int = 5):
        if interval_minutes < 1:
            raise ValueError(f"interval_minutes must be at least 1, got {interval_minutes}")
        self.interval_minutes = interval_minutes

    def accept(self, telegram) -> bool:
        return telegram.timestamp.minute % self.interval_minutes == 0


class GasDeduplicator:
    """
    Pass each gas reading once, keyed on the gas meter timestamp.

    Remembers the last *size* timestamps; thread safe.
    """

    def __init__(self, size: int = 64):
        self.__size = size
        self.__seen = OrderedDict()
        self.__lock = threading.Lock()

    def accept(self, telegram) -> bool:
        key = telegram.gas.timestamp
        with self.__lock:
            if key in self.__seen:
                return False
            self.__seen[key] = None
            while len(self.__seen) > self.__size:
                self.__seen.popitem(last=False)
            return True
