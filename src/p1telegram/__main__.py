#!/usr/bin/env python3

"""
DESCRIPTION
  Read DSMR (Dutch Smart Meter Requirements) smart energy meter via P1 USB cable,
  parse and verify each telegram and publish the readings to MQTT.

  python -m p1telegram              run the daemon
  python -m p1telegram parse FILE   parse one telegram from FILE ("-" for stdin)
                                    and print the reading as JSON

3 Worker threads:
  - P1 USB serial port reader
  - Telegram parser, publishing rows
  - MQTT client


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

import argparse
import json
import queue
import signal
import socket
import sys
import threading
import time

from p1telegram import __version__
from p1telegram import config as cfg
from p1telegram import mqtt
from p1telegram import p1_parser
from p1telegram import p1_serial
from p1telegram.errors import ParseError
from p1telegram.log import logger, stats_logger
from p1telegram.telegram import parse_telegram

# Frames waiting for the parser; the meter sends one per second
FRAME_QUEUE_SIZE = 10


def _single_instance_lock():
    """Ensure that only one daemon runs; returns the lock socket or None."""
    if sys.platform != "linux":
        return None

    # Abstract socket, by prefixing it with null
    lockfile = "\0p1telegram_lockfile"
    s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        s.bind(lockfile)
    except OSError as err:
        s.close()
        logger.error("instance_already_running", error=str(err))
        sys.exit(1)
    return s


def parse_file(path, home_timezone=None, strict=False):
    """
    Parse a single telegram file and print it as JSON.

    Returns:
      int: exit code, 0 on success and 1 on a parse failure
    """
    if path == "-":
        raw = sys.stdin.buffer.read()
    else:
        with open(path, "rb") as f:
            raw = f.read()

    try:
        telegram = parse_telegram(raw, home_timezone or cfg.HOME_TIMEZONE, strict=strict)
    except ParseError as e:
        logger.error("telegram_rejected", file=path, **e.context())
        return 1

    print(json.dumps(telegram.as_dict(), indent=2))
    return 0


def run_daemon():
    """Start the worker threads and block till the serial reader stops."""
    lock = _single_instance_lock()
    logger.info("application_started", version=__version__)

    threads_stopper = threading.Event()
    mqtt_stopper = threading.Event()
    frames = queue.Queue(maxsize=FRAME_QUEUE_SIZE)

    def exit_gracefully(signum, _stackframe):
        logger.info("graceful_shutdown_initiated", signal=signum)
        threads_stopper.set()

    signal.signal(signal.SIGINT, exit_gracefully)
    signal.signal(signal.SIGTERM, exit_gracefully)

    t_mqtt = mqtt.MQTTClient(
        mqtt_broker=cfg.MQTT_BROKER,
        mqtt_port=cfg.MQTT_PORT,
        mqtt_client_id=cfg.MQTT_CLIENT_ID,
        mqtt_qos=cfg.MQTT_QOS,
        username=cfg.MQTT_USERNAME,
        password=cfg.MQTT_PASSWORD,
        mqtt_stopper=mqtt_stopper,
        transport=cfg.MQTT_TRANSPORT,
        use_tls=cfg.MQTT_USE_TLS,
        ws_path=cfg.MQTT_WS_PATH,
    )
    t_serial = p1_serial.TaskReadSerial(threads_stopper, frames)
    t_parse = p1_parser.ParseTelegrams(threads_stopper, frames, t_mqtt)

    stats_logger.start()
    logger.info(
        "configuration_loaded",
        serial_port=cfg.ser_port,
        home_timezone=cfg.HOME_TIMEZONE,
        strict=cfg.STRICT,
        power_sample_minutes=cfg.POWER_SAMPLE_MINUTES,
        stats_interval=cfg.STATS_LOG_INTERVAL,
    )

    status_topic = cfg.MQTT_TOPIC_PREFIX + "/status"
    t_mqtt.will_set(status_topic, payload="offline", qos=cfg.MQTT_QOS, retain=True)

    t_mqtt.start()
    t_parse.start()
    t_serial.start()
    t_mqtt.set_status(status_topic, "online", retain=True)

    # block till t_serial stops receiving telegrams/exits
    t_serial.join()
    threads_stopper.set()
    t_parse.join()

    t_mqtt.set_status(status_topic, "offline", retain=True)

    # Give paho a moment to flush before disconnecting
    time.sleep(1)
    mqtt_stopper.set()
    t_mqtt.join()

    stats_logger.stop()
    logger.info("application_exiting")
    if lock is not None:
        lock.close()
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(prog="p1telegram", description="DSMR P1 telegram parser")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    parse_cmd = subparsers.add_parser("parse", help="parse one telegram file and print JSON")
    parse_cmd.add_argument("file", help='telegram file, "-" for stdin')
    parse_cmd.add_argument("--timezone", default=None, help="meter home timezone")
    parse_cmd.add_argument("--strict", action="store_true", help="reject unknown OBIS codes")

    args = parser.parse_args(argv)
    if args.command == "parse":
        return parse_file(args.file, home_timezone=args.timezone, strict=args.strict)
    return run_daemon()


if __name__ == "__main__":
    sys.exit(main())
