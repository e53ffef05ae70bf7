"""
Read raw DSMR telegrams from the P1 USB serial port.

Each telegram is collected byte for byte, from the "/" header line through the
"!XXXX" checksum line, CR LF included, and handed whole to the parser thread.
Lines before the first header (a telegram already half sent when the port was
opened) are discarded.

To test in bash the P1 usb connector:
raw -echo < /dev/ttyUSB0; cat -vt /dev/ttyUSB0

OR
sudo apt-get install -y python3-serial
sudo chmod o+rw /dev/ttyUSB0
python3 -m serial.tools.miniterm /dev/ttyUSB0 115200 --xonxoff


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

import contextlib
import queue
import threading
import time

import serial

from p1telegram import config as cfg
from p1telegram.log import logger, stats_logger

# Simulator files may end with this line instead of a plain end of file
SIMULATOR_EOF = b"EOF"


def open_port(port, baudrate):
    """DSMR 4.0 and later: 8 data bits, no parity, one stop bit."""
    tty = serial.Serial()
    tty.port = port
    tty.baudrate = baudrate
    tty.bytesize = serial.EIGHTBITS
    tty.parity = serial.PARITY_NONE
    tty.stopbits = serial.STOPBITS_ONE
    tty.xonxoff = 0
    tty.rtscts = 0
    tty.timeout = 20
    tty.open()
    return tty


def read_frame(readline, stopper):
    """
    Collect one telegram from a line source.

    Args:
      :param callable readline: returns the next line as bytes, b"" on end of input
      :param threading.Event() stopper: abort when set

    Returns:
      bytes: the telegram, or None at end of input / on stop
    """
    # Skip to the header
    while not stopper.is_set():
        line = readline()
        if not line or line.rstrip() == SIMULATOR_EOF:
            return None
        if line.startswith(b"/"):
            break
        logger.debug("serial_line_skipped", length=len(line))
    else:
        return None

    frame = bytearray(line)
    while not stopper.is_set():
        line = readline()
        if not line or line.rstrip() == SIMULATOR_EOF:
            logger.warning("serial_frame_incomplete", length=len(frame))
            return None
        frame += line
        if line.startswith(b"!"):
            return bytes(frame)

    return None


class TaskReadSerial(threading.Thread):
    def __init__(self, stopper, frames):
        """

        Args:
          :param threading.Event() stopper: stops thread
          :param queue.Queue() frames: receives each raw telegram as bytes
        """

        logger.debug("serial_init_started")
        super().__init__(name="p1-serial")
        self.__stopper = stopper
        self.__frames = frames

        try:
            if cfg.PRODUCTION:
                self.__tty = open_port(cfg.ser_port, cfg.ser_baudrate)
                logger.info(
                    "serial_port_opened", port=cfg.ser_port, baudrate=cfg.ser_baudrate
                )
            else:
                self.__tty = open(cfg.SIMULATORFILE, "rb")
                logger.info("simulator_file_opened", file=cfg.SIMULATORFILE)

        except (OSError, serial.SerialException) as e:
            logger.error(
                "serial_port_open_failed",
                error_type=type(e).__name__,
                error=str(e),
                port=cfg.ser_port,
            )
            stats_logger.increment("serial_errors")
            self.__stopper.set()
            raise ValueError("Cannot open P1 serial port", cfg.ser_port) from e

    def __read_serial(self):
        """
          Reads telegrams until stopped or, in simulation, until end of file.
          A full queue means the parser is behind; the oldest telegram is
          dropped since only the most recent reading matters.

        Returns:
          None
        """
        logger.debug("read_serial_started")

        while not self.__stopper.is_set():
            frame = read_frame(self.__tty.readline, self.__stopper)
            if frame is None:
                logger.debug("serial_input_ended")
                break

            stats_logger.increment("telegrams_received")
            try:
                self.__frames.put_nowait(frame)
            except queue.Full:
                with contextlib.suppress(queue.Empty):
                    self.__frames.get_nowait()
                self.__frames.put_nowait(frame)
                logger.warning("telegram_dropped", reason="parser_backlog")

            # In simulation mode, insert a delay
            if not cfg.PRODUCTION:
                # 1sec delay mimics dsmr behaviour, which transmits every 1sec a telegram
                time.sleep(1.0)

        logger.debug("read_serial_stopped")

    def run(self):
        logger.debug("serial_thread_started")
        try:
            self.__read_serial()

        except serial.SerialException as e:
            logger.error("serial_thread_exception", error=str(e))
            stats_logger.increment("serial_errors")

        finally:
            self.__tty.close()
            self.__stopper.set()

        logger.debug("serial_thread_stopped")
