"""
Parse raw telegrams and publish the resulting rows to MQTT.

Topics:
  <prefix>/telegram  combined row, every telegram
  <prefix>/power     power row, at the configured storage cadence
  <prefix>/gas       gas row, once per gas meter reading

A telegram that fails to parse is logged with its error kind, the error
context and the raw input, and is then dropped.

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

import json
import queue
import threading

from p1telegram import config as cfg
from p1telegram import rows
from p1telegram.errors import ChecksumMismatch, ParseError
from p1telegram.log import logger, stats_logger
from p1telegram.telegram import parse_telegram


class ParseTelegrams(threading.Thread):
    def __init__(self, stopper, frames, mqtt, topic_prefix=None, sampler=None, gas_filter=None):
        """
        Args:
          :param threading.Event() stopper: stops thread once the frame queue is drained
          :param queue.Queue() frames: raw telegrams from TaskReadSerial
          :param mqtt: object with do_publish(topic, message, retain=False)
          :param str topic_prefix: defaults to config MQTT_TOPIC_PREFIX
          :param rows.PowerSampler sampler: storage cadence of power rows
          :param rows.GasDeduplicator gas_filter: drops repeated gas readings
        """
        logger.debug("parser_init")
        super().__init__(name="p1-parser")
        self.__stopper = stopper
        self.__frames = frames
        self.__mqtt = mqtt
        self.__prefix = topic_prefix or cfg.MQTT_TOPIC_PREFIX
        self.__sampler = sampler or rows.PowerSampler(cfg.POWER_SAMPLE_MINUTES)
        self.__gas_filter = gas_filter or rows.GasDeduplicator()

    def __publish(self, name, row):
        self.__mqtt.do_publish(f"{self.__prefix}/{name}", json.dumps(row))

    def handle(self, raw):
        """
        Parse one raw telegram and publish its rows.

        Returns:
          ParsedTelegram, or None when the telegram was rejected
        """
        try:
            telegram = parse_telegram(raw, cfg.HOME_TIMEZONE, strict=cfg.STRICT)
        except ParseError as e:
            if isinstance(e, ChecksumMismatch):
                stats_logger.increment("checksum_errors")
            stats_logger.increment("parse_errors")
            if isinstance(raw, bytes):
                raw = raw.decode("ascii", errors="backslashreplace")
            logger.warning("telegram_rejected", raw=raw, **e.context())
            return None

        stats_logger.increment("telegrams_parsed")
        logger.debug("telegram_parsed", timestamp=telegram.timestamp.isoformat())

        self.__publish("telegram", rows.telegram_row(telegram))
        if self.__sampler.accept(telegram):
            self.__publish("power", rows.power_row(telegram))
        if self.__gas_filter.accept(telegram):
            logger.info("gas_reading", gas_timestamp=telegram.gas.timestamp.isoformat())
            self.__publish("gas", rows.gas_row(telegram))

        return telegram

    def run(self):
        logger.debug("parser_thread_started")
        while not (self.__stopper.is_set() and self.__frames.empty()):
            try:
                raw = self.__frames.get(timeout=0.5)
            except queue.Empty:
                continue
            self.handle(raw)

        logger.debug("parser_thread_stopped")
