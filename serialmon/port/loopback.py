"""
loopback.py – порт без железа.

Всё, что пишется в порт, возвращается в чтение (как перемычка TX-RX).
Плюс ручки для стенда: ``feed`` / ``feed_eof`` / ``fail`` / ``unplug`` / ``plug``.
"""

from __future__ import annotations
import asyncio
import logging
from typing import Optional, Union

from ..logging_config import log_hex_data
from ..models import PortConfig
from .errors import (DisconnectError, InvalidStateError, NoSelectionError,
                     TransportError, WriteError)
from .transport import PortHandle, PortReader, PortTransport, PortWriter, ReadResult

_log = logging.getLogger("port.loopback")

_EOF = object()
_Item = Union[bytes, Exception, object]


class LoopbackReader(PortReader):
    def __init__(self, handle: "LoopbackHandle"):
        self._handle = handle
        self._cancelled = False

    async def read(self) -> ReadResult:
        if self._cancelled:
            return ReadResult(done=True)
        item = await self._handle.rx.get()
        if self._cancelled or item is _EOF:
            return ReadResult(done=True)
        if isinstance(item, Exception):
            raise item
        log_hex_data(_log, logging.DEBUG, f"RX {self._handle.name}", item, 32)
        return ReadResult(item)

    async def cancel(self) -> None:
        self._cancelled = True
        self._handle.rx.put_nowait(_EOF)     # будим ожидающий read()


class LoopbackWriter(PortWriter):
    def __init__(self, handle: "LoopbackHandle"):
        self._handle = handle
        self._closed = False

    async def write(self, data: bytes) -> None:
        if self._closed:
            raise WriteError("Writer is closed.")
        if self._handle.write_error is not None:
            raise self._handle.write_error
        self._handle.written.extend(data)
        if self._handle.echo:
            self._handle.rx.put_nowait(bytes(data))

    async def close(self) -> None:
        self._closed = True


class LoopbackHandle(PortHandle):
    def __init__(self, name: str = "loop://", echo: bool = True,
                 open_error: Optional[TransportError] = None):
        super().__init__(name)
        self.echo = echo
        self.open_error = open_error
        self.write_error: Optional[TransportError] = None
        self.config: Optional[PortConfig] = None
        self.is_open = False
        self.written = bytearray()
        self.rx: asyncio.Queue[_Item] = asyncio.Queue()
        self._reader: Optional[LoopbackReader] = None
        self._writer: Optional[LoopbackWriter] = None

    async def open(self, config: PortConfig) -> None:
        if self.open_error is not None:
            raise self.open_error
        if self.is_open:
            raise InvalidStateError(f"Port {self.name} is already open.")
        self.config = config
        self.is_open = True
        _log.info("Loopback open %s @ %d bps", self.name, config.baud_rate)

    def reader(self) -> LoopbackReader:
        if not self.is_open:
            raise InvalidStateError(f"Port {self.name} is not open.")
        if self._reader is not None:
            raise InvalidStateError("Reader already acquired.")
        self._reader = LoopbackReader(self)
        return self._reader

    def writer(self) -> LoopbackWriter:
        if not self.is_open:
            raise InvalidStateError(f"Port {self.name} is not open.")
        if self._writer is not None:
            raise InvalidStateError("Writer already acquired.")
        self._writer = LoopbackWriter(self)
        return self._writer

    async def close(self) -> None:
        self.is_open = False
        self._reader = self._writer = None
        _log.info("Loopback closed %s", self.name)

    # ───── стенд ───────────────────────────────────────────────
    def feed(self, data: bytes) -> None:
        self.rx.put_nowait(bytes(data))

    def feed_eof(self) -> None:
        self.rx.put_nowait(_EOF)

    def fail(self, exc: Exception) -> None:
        """Следующее чтение упадёт с ``exc``."""
        self.rx.put_nowait(exc)

    def unplug(self) -> None:
        self._fire(self._disconnect_hooks)
        self.rx.put_nowait(DisconnectError("The device has been lost."))

    def plug(self) -> None:
        self._fire(self._connect_hooks)


class LoopbackTransport(PortTransport):
    def __init__(self, name: str = "loop://", echo: bool = True, available: bool = True,
                 open_error: Optional[TransportError] = None):
        self.name = name
        self.echo = echo
        self.available = available
        self.open_error = open_error
        self.last_handle: Optional[LoopbackHandle] = None

    async def request_port(self) -> LoopbackHandle:
        if not self.available:
            raise NoSelectionError("No port selected.")
        self.last_handle = LoopbackHandle(self.name, echo=self.echo, open_error=self.open_error)
        return self.last_handle
