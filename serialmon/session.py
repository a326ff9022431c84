import asyncio
import logging
from typing import Optional

from .config import Settings, get_settings
from .enums import LINE_WIDTHS, SessionState, Severity
from .escapes import encode
from .hexdump import HexDumpRenderer
from .models import Event, PortConfig
from .notifications import NotificationQueue
from .port.config_ext import get as get_port_cfg
from .port.errors import (DisconnectError, InvalidStateError, NoSelectionError,
                          TransientReadError, TransportError)
from .port.transport import PortHandle, PortReader, PortTransport, PortWriter

log = logging.getLogger("ByteSession")

RESTART_HINT = "It is recommended to restart the monitor."


# ────────── ByteSession ─────────────────────────────────────────
class ByteSession:
    """
    • Жизненный цикл порта: IDLE → CONNECTING → OPEN → CLOSING → IDLE
    • Цикл чтения (asyncio task) → ``received`` + текст + hex-дамп
    • Отправка текста с escape-последовательностями
    • Уведомления в ``notifications``, все события в ``self.events``

    Ни одна транспортная ошибка не выходит наружу исключением: всё
    превращается в уведомление. Нарушение предусловий → ``False``.
    """

    def __init__(self, transport: PortTransport, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.transport = transport
        self.state = SessionState.IDLE
        self.config: Optional[PortConfig] = None
        self.notifications = NotificationQueue(self.settings.notification_lifetime)
        self.events: asyncio.Queue = asyncio.Queue(maxsize=self.settings.event_queue_size)

        self._received = bytearray()
        self._text = ""
        self._hex = HexDumpRenderer(self.settings.line_width)

        self._handle: Optional[PortHandle] = None
        self._reader: Optional[PortReader] = None
        self._writer: Optional[PortWriter] = None
        self._read_task: Optional[asyncio.Task] = None
        self._closing: Optional[asyncio.Task] = None

    # ───── представления ───────────────────────────────────────
    @property
    def received(self) -> bytes:
        return bytes(self._received)

    def plain_text(self) -> str:
        return self._text

    def hex_dump(self) -> str:
        return self._hex.render()

    @property
    def received_bytes(self) -> int:
        return self._hex.byte_count

    @property
    def line_width(self) -> int:
        return self._hex.line_width

    @property
    def port_name(self) -> Optional[str]:
        return self._handle.name if self._handle else None

    # ───── подключение ─────────────────────────────────────────
    async def connect(self, config: PortConfig) -> bool:
        if self.state is not SessionState.IDLE:
            log.warning("connect() rejected in state %s", self.state.value)
            return False

        self._set_state(SessionState.CONNECTING)
        try:
            return await self._open_session(config)
        except BaseException as e:
            # отмена или не транспортная ошибка: не застревать в CONNECTING
            log.error("Connect aborted (%s): %s", type(e).__name__, e)
            if self.state in (SessionState.CONNECTING, SessionState.FAULTED):
                self._set_state(SessionState.IDLE)
            raise

    async def _open_session(self, config: PortConfig) -> bool:
        try:
            handle = await self.transport.request_port()
        except NoSelectionError as e:
            log.info("No port selected: %s", e)
            self._set_state(SessionState.IDLE)
            self._notify(Severity.INFO, str(e) or "No port selected.")
            return False
        except TransportError as e:
            self._connect_failed(e)
            return False

        try:
            await handle.open(config)
        except TransportError as e:
            self._connect_failed(e)
            return False

        try:
            reader, writer = handle.reader(), handle.writer()
        except TransportError as e:
            # порт открыт, но потоки не отдаёт
            log.error("Port %s opened but streams unavailable: %s", handle.name, e)
            self._set_state(SessionState.FAULTED)
            self._handle = handle
            await self._release()
            self._set_state(SessionState.IDLE)
            self._notify(Severity.ERROR, str(e))
            return False

        handle.on_disconnect(self._on_port_disconnect)
        handle.on_connect(self._on_port_connect)
        self._handle, self._reader, self._writer = handle, reader, writer
        self.config = config
        self._set_state(SessionState.OPEN)
        self._read_task = asyncio.create_task(self._read_loop(reader))
        self._notify(Severity.SUCCESS, "Serial port is connected.")
        return True

    def _connect_failed(self, e: TransportError) -> None:
        self._set_state(SessionState.IDLE)
        if isinstance(e, InvalidStateError):
            message = f"{e} {RESTART_HINT}"
        else:
            message = str(e)
        log.error("Connect failed (%s): %s", type(e).__name__, e)
        self._notify(Severity.ERROR, message)

    async def disconnect(self, error_message: str = "") -> bool:
        if self.state not in (SessionState.OPEN, SessionState.FAULTED):
            log.warning("disconnect() rejected in state %s", self.state.value)
            return False

        self._set_state(SessionState.CLOSING)
        task = self._read_task
        await self._release()
        if task is not None:
            await task
        self._set_state(SessionState.IDLE)

        if error_message:
            self._notify(Severity.ERROR, f"{error_message} Serial port is disconnected.")
        else:
            self._notify(Severity.SUCCESS, "Serial port is disconnected.")
        return True

    def _detach(self):
        held = (self._reader, self._writer, self._handle)
        self._reader = self._writer = self._handle = None
        self.config = None
        return held

    async def _release(self) -> None:
        await self._close_port(*self._detach())

    @staticmethod
    async def _close_port(reader: Optional[PortReader], writer: Optional[PortWriter],
                          handle: Optional[PortHandle]) -> None:
        """cancel reader → close writer → close port; ошибки только в лог."""
        steps = [
            ("cancel reader", reader.cancel if reader else None),
            ("close writer", writer.close if writer else None),
            ("close port", handle.close if handle else None),
        ]
        for what, step in steps:
            if step is None:
                continue
            try:
                await step()
            except TransportError as e:
                log.warning("%s failed: %s", what, e)

    # ───── события железа ──────────────────────────────────────
    def _on_port_disconnect(self) -> None:
        if self.state not in (SessionState.OPEN, SessionState.FAULTED):
            return
        log.warning("Port %s disconnected from the computer", self.port_name)
        held = self._detach()
        self._set_state(SessionState.IDLE)
        self._notify(Severity.INFO, "Serial port is disconnected from the computer.")
        # цикл чтения завершится сам на следующем read()
        self._closing = asyncio.get_running_loop().create_task(self._close_port(*held))

    def _on_port_connect(self) -> None:
        log.info("Port %s connected to the computer", self.port_name)
        self._notify(Severity.INFO, "Serial port is connected to the computer.")

    # ───── цикл чтения ─────────────────────────────────────────
    async def _read_loop(self, reader: PortReader) -> None:
        log.info("Read loop started on %s", self.port_name)
        try:
            while True:
                try:
                    result = await reader.read()
                except DisconnectError as e:
                    log.info("Read loop stopped by disconnect: %s", e)
                    break
                except TransientReadError as e:
                    log.warning("Transient read error, retrying: %s", e)
                    await asyncio.sleep(get_port_cfg().retry_delay)
                    continue
                except TransportError as e:
                    log.error("Read failed: %s", e)
                    self._notify(Severity.ERROR, str(e))
                    if self.state is SessionState.OPEN:
                        self._set_state(SessionState.FAULTED)
                    break

                if result.done:
                    break
                if result.data:
                    self._ingest(result.data)
        finally:
            log.info("Read loop finished")

    def _ingest(self, chunk: bytes) -> None:
        self._received.extend(chunk)
        # весь буфер целиком – UTF-8 символ может быть разрезан между чанками
        self._text = self._received.decode(self.settings.text_encoding, errors="replace")
        self._hex.append(chunk)
        self._publish(Event(type="rx", data=chunk.hex(), size=len(chunk)))

    # ───── отправка / очистка / ширина ─────────────────────────
    async def write(self, text: str, append_crlf: bool = True) -> bool:
        if self.state is not SessionState.OPEN or self._writer is None:
            log.warning("write() rejected in state %s", self.state.value)
            return False
        if append_crlf:
            text += "\r\n"
        payload = encode(text, self.settings.text_encoding)
        try:
            await self._writer.write(payload)
        except TransportError as e:
            log.error("Write failed: %s", e)
            self._notify(Severity.ERROR, str(e))
            return False
        log.info("TX %d bytes to %s", len(payload), self.port_name)
        self._publish(Event(type="tx", data=payload.hex(), size=len(payload)))
        return True

    def clear(self) -> bool:
        if self.state is not SessionState.IDLE:
            log.warning("clear() rejected in state %s", self.state.value)
            return False
        self._received.clear()
        self._text = ""
        self._hex.reset()
        log.info("Buffers cleared")
        return True

    def set_line_width(self, width: int) -> None:
        if width not in LINE_WIDTHS:
            raise ValueError(f"line width must be one of {LINE_WIDTHS}, got {width}")
        self._hex.set_line_width(width, bytes(self._received))

    # ───── служебное ───────────────────────────────────────────
    def _set_state(self, state: SessionState) -> None:
        if state is self.state:
            return
        log.info("State %s -> %s", self.state.value, state.value)
        self.state = state
        self._publish(Event(type="state", state=state))

    def _notify(self, severity: Severity, message: str) -> None:
        level = logging.ERROR if severity is Severity.ERROR else logging.INFO
        log.log(level, "[%s] %s", severity.value, message)
        self.notifications.push(severity, message)
        self._publish(Event(type="notification", severity=severity, message=message))

    def _publish(self, event: Event) -> None:
        if self.events.full():
            dropped = self.events.get_nowait()       # старое событие выкидываем
            log.debug("event queue full, dropped %s", dropped["type"])
        self.events.put_nowait(event.model_dump(mode="json", exclude_none=True))
