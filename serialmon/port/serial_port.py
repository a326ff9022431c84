"""
serial_port.py – транспорт поверх pyserial.

* блокирующий ``read()`` крутится в executor'е с коротким таймаутом,
  чтобы ``cancel()`` срабатывал не позже чем через ``read_timeout``
* SerialException во время чтения = устройство отвалилось
  (USB-адаптер выдернули) → хуки ``on_disconnect`` + DisconnectError
"""

from __future__ import annotations
import asyncio
import errno
import logging
import threading
from typing import Optional

import serial
import serial.tools.list_ports

from ..enums import FlowControl, Parity
from ..logging_config import log_hex_data, log_io_summary
from ..models import PortConfig
from .config_ext import PortCfg, get as _cfg
from .errors import (DisconnectError, InvalidStateError, NoSelectionError,
                     PortOpenError, ReadError, TransientReadError, WriteError)
from .transport import PortHandle, PortReader, PortTransport, PortWriter, ReadResult

_log = logging.getLogger("port.serial")

PARITY = {
    Parity.NONE: serial.PARITY_NONE,
    Parity.EVEN: serial.PARITY_EVEN,
    Parity.ODD:  serial.PARITY_ODD,
}
BYTESIZE = {7: serial.SEVENBITS, 8: serial.EIGHTBITS}
STOPBITS = {1: serial.STOPBITS_ONE, 2: serial.STOPBITS_TWO}


def list_ports() -> list[dict]:
    """Все COM/tty порты, которые видит pyserial."""
    return [
        {"device": p.device, "description": p.description, "hwid": p.hwid}
        for p in serial.tools.list_ports.comports()
    ]


class SerialReader(PortReader):
    def __init__(self, handle: "SerialPortHandle"):
        self._handle = handle
        self._cancelled = threading.Event()
        self._pending: Optional[asyncio.Future] = None

    async def read(self) -> ReadResult:
        if self._cancelled.is_set():
            return ReadResult(done=True)
        loop = asyncio.get_running_loop()
        self._pending = loop.run_in_executor(None, self._read_blocking)
        try:
            return await self._pending
        except DisconnectError:
            _log.warning("Port %s vanished while reading", self._handle.name)
            self._handle._fire(self._handle._disconnect_hooks)
            raise
        finally:
            self._pending = None

    async def cancel(self) -> None:
        _log.debug("Cancelling reader on %s", self._handle.name)
        self._cancelled.set()
        pending = self._pending
        if pending is not None:
            try:
                await asyncio.shield(pending)
            except Exception as e:   # чтение само доложит об ошибке
                _log.debug("Pending read ended with %r", e)

    def _read_blocking(self) -> ReadResult:
        ser = self._handle.serial
        size = self._handle.cfg.chunk_size
        while not self._cancelled.is_set():
            try:
                chunk = ser.read(min(ser.in_waiting or 1, size))
            except (InterruptedError, BlockingIOError) as e:
                raise TransientReadError(str(e)) from e
            except serial.SerialException as e:
                if self._cancelled.is_set():
                    break
                raise DisconnectError(str(e)) from e
            except (OSError, TypeError, ValueError) as e:
                if self._cancelled.is_set():
                    break
                raise ReadError(str(e)) from e
            if chunk:
                log_hex_data(_log, logging.DEBUG, f"RX {self._handle.name}", chunk, 32)
                return ReadResult(chunk)
        return ReadResult(done=True)


class SerialWriter(PortWriter):
    def __init__(self, handle: "SerialPortHandle"):
        self._handle = handle
        self._closed = False
        self._lock = threading.Lock()

    async def write(self, data: bytes) -> None:
        if self._closed:
            raise WriteError("Writer is closed.")
        await asyncio.get_running_loop().run_in_executor(None, self._write_blocking, data)

    def _write_blocking(self, data: bytes) -> None:
        with self._lock:
            log_io_summary(_log, "TX", self._handle.name, f"{len(data)} bytes")
            log_hex_data(_log, logging.INFO, f"SENDING to {self._handle.name}", data)
            try:
                self._handle.serial.write(data)
                self._handle.serial.flush()
            except (serial.SerialException, OSError) as e:
                raise WriteError(str(e)) from e

    async def close(self) -> None:
        self._closed = True


class SerialPortHandle(PortHandle):
    def __init__(self, name: str, cfg: PortCfg):
        super().__init__(name)
        self.cfg = cfg
        self.serial: Optional[serial.Serial] = None
        self._reader: Optional[SerialReader] = None
        self._writer: Optional[SerialWriter] = None

    async def open(self, config: PortConfig) -> None:
        if self.serial is not None and self.serial.is_open:
            raise InvalidStateError(f"Port {self.name} is already open.")
        loop = asyncio.get_running_loop()
        self.serial = await loop.run_in_executor(None, self._open_blocking, config)
        _log.info("Serial open %s @ %d bps (%d%s%d, flow=%s)",
                  self.name, config.baud_rate, config.data_bits,
                  config.parity.value[0].upper(), config.stop_bits,
                  config.flow_control.value)

    def _open_blocking(self, config: PortConfig) -> serial.Serial:
        try:
            return serial.Serial(
                port=self.name,
                baudrate=config.baud_rate,
                bytesize=BYTESIZE[config.data_bits],
                parity=PARITY[config.parity],
                stopbits=STOPBITS[config.stop_bits],
                rtscts=config.flow_control is FlowControl.HARDWARE,
                timeout=self.cfg.read_timeout,
            )
        except serial.SerialException as e:
            if getattr(e, "errno", None) == errno.EBUSY:
                raise InvalidStateError(f"Port {self.name} is busy.") from e
            raise PortOpenError(str(e)) from e
        except ValueError as e:
            raise PortOpenError(str(e)) from e

    def reader(self) -> SerialReader:
        if self.serial is None:
            raise InvalidStateError(f"Port {self.name} is not open.")
        if self._reader is not None:
            raise InvalidStateError("Reader already acquired.")
        self._reader = SerialReader(self)
        return self._reader

    def writer(self) -> SerialWriter:
        if self.serial is None:
            raise InvalidStateError(f"Port {self.name} is not open.")
        if self._writer is not None:
            raise InvalidStateError("Writer already acquired.")
        self._writer = SerialWriter(self)
        return self._writer

    async def close(self) -> None:
        if self.serial is None:
            return
        ser, self.serial = self.serial, None
        self._reader = self._writer = None
        await asyncio.get_running_loop().run_in_executor(None, ser.close)
        _log.info("Serial closed %s", self.name)


class SerialTransport(PortTransport):
    def __init__(self, cfg: PortCfg | None = None):
        self.cfg = cfg or _cfg()

    async def request_port(self) -> SerialPortHandle:
        name = self.cfg.serial_port
        if not name:
            ports = list_ports()
            if not ports:
                raise NoSelectionError("No serial port available.")
            name = ports[0]["device"]
            _log.info("No port configured, picked %s (%s)", name, ports[0]["description"])
        return SerialPortHandle(name, self.cfg)
