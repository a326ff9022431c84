"""Unit tests for the pyserial transport against a fake serial.Serial."""

import asyncio
import errno
import queue

import pytest
import serial

from serialmon.enums import SessionState
from serialmon.models import PortConfig
from serialmon.port import serial_port
from serialmon.port.config_ext import PortCfg
from serialmon.port.errors import (DisconnectError, InvalidStateError, NoSelectionError,
                                   PortOpenError)
from serialmon.port.serial_port import SerialTransport
from serialmon.session import ByteSession

CFG = PortCfg(serial_port="/dev/ttyFAKE0", read_timeout=0.01)


class FakeSerial:
    """Stands in for serial.Serial; incoming data is scripted per test."""

    instances: list = []
    open_error: Exception | None = None

    def __init__(self, **kwargs):
        if FakeSerial.open_error is not None:
            raise FakeSerial.open_error
        self.kwargs = kwargs
        self.is_open = True
        self.incoming: queue.Queue = queue.Queue()
        self.written = bytearray()
        FakeSerial.instances.append(self)

    @property
    def in_waiting(self) -> int:
        return self.incoming.qsize()

    def read(self, size: int = 1) -> bytes:
        try:
            item = self.incoming.get(timeout=0.01)
        except queue.Empty:
            return b""
        if isinstance(item, Exception):
            raise item
        return item

    def write(self, data: bytes) -> int:
        self.written.extend(data)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.is_open = False


@pytest.fixture(autouse=True)
def fake_serial(monkeypatch):
    FakeSerial.instances = []
    FakeSerial.open_error = None
    monkeypatch.setattr(serial, "Serial", FakeSerial)
    return FakeSerial


class TestRequestPort:
    def test_configured_port(self):
        handle = asyncio.run(SerialTransport(CFG).request_port())
        assert handle.name == "/dev/ttyFAKE0"

    def test_first_available_port(self, monkeypatch):
        monkeypatch.setattr(serial_port, "list_ports", lambda: [
            {"device": "/dev/ttyUSB3", "description": "CP2102", "hwid": "USB"},
        ])
        handle = asyncio.run(SerialTransport(PortCfg()).request_port())
        assert handle.name == "/dev/ttyUSB3"

    def test_nothing_to_pick(self, monkeypatch):
        monkeypatch.setattr(serial_port, "list_ports", lambda: [])
        with pytest.raises(NoSelectionError):
            asyncio.run(SerialTransport(PortCfg()).request_port())


class TestOpen:
    def test_parameters_mapped_to_pyserial(self):
        config = PortConfig(baud_rate=19200, data_bits=7, parity="even",
                            stop_bits=2, flow_control="hardware")

        async def scenario():
            handle = await SerialTransport(CFG).request_port()
            await handle.open(config)
            return handle

        asyncio.run(scenario())
        kwargs = FakeSerial.instances[0].kwargs
        assert kwargs["port"] == "/dev/ttyFAKE0"
        assert kwargs["baudrate"] == 19200
        assert kwargs["bytesize"] == serial.SEVENBITS
        assert kwargs["parity"] == serial.PARITY_EVEN
        assert kwargs["stopbits"] == serial.STOPBITS_TWO
        assert kwargs["rtscts"] is True
        assert kwargs["timeout"] == 0.01

    def test_open_twice(self):
        async def scenario():
            handle = await SerialTransport(CFG).request_port()
            await handle.open(PortConfig(baud_rate=9600))
            await handle.open(PortConfig(baud_rate=9600))

        with pytest.raises(InvalidStateError):
            asyncio.run(scenario())

    def test_busy_port_is_invalid_state(self):
        FakeSerial.open_error = serial.SerialException(errno.EBUSY, "Device or resource busy")

        async def scenario():
            handle = await SerialTransport(CFG).request_port()
            await handle.open(PortConfig(baud_rate=9600))

        with pytest.raises(InvalidStateError):
            asyncio.run(scenario())

    def test_other_failure_is_open_error(self):
        FakeSerial.open_error = serial.SerialException("could not open port")

        async def scenario():
            handle = await SerialTransport(CFG).request_port()
            await handle.open(PortConfig(baud_rate=9600))

        with pytest.raises(PortOpenError):
            asyncio.run(scenario())

    def test_streams_handed_out_once(self):
        async def scenario():
            handle = await SerialTransport(CFG).request_port()
            await handle.open(PortConfig(baud_rate=9600))
            handle.reader()
            handle.reader()

        with pytest.raises(InvalidStateError):
            asyncio.run(scenario())


class TestReadWrite:
    def test_read_write_and_cancel(self):
        async def scenario():
            handle = await SerialTransport(CFG).request_port()
            await handle.open(PortConfig(baud_rate=9600))
            reader, writer = handle.reader(), handle.writer()
            fake = FakeSerial.instances[0]
            fake.incoming.put(b"\x01\x02")
            first = await reader.read()
            await writer.write(b"AT\r\n")
            await reader.cancel()
            after_cancel = await reader.read()
            await handle.close()
            return first, after_cancel, bytes(fake.written), fake.is_open

        first, after_cancel, written, is_open = asyncio.run(scenario())
        assert first.data == b"\x01\x02" and not first.done
        assert after_cancel.done
        assert written == b"AT\r\n"
        assert is_open is False

    def test_serial_exception_is_disconnect(self):
        fired = []

        async def scenario():
            handle = await SerialTransport(CFG).request_port()
            await handle.open(PortConfig(baud_rate=9600))
            handle.on_disconnect(lambda: fired.append(True))
            reader = handle.reader()
            FakeSerial.instances[0].incoming.put(serial.SerialException("device reports readiness to read"))
            await reader.read()

        with pytest.raises(DisconnectError):
            asyncio.run(scenario())
        assert fired == [True]


class TestSessionOverSerial:
    def test_unplug_during_session(self, settings):
        async def scenario():
            session = ByteSession(SerialTransport(CFG), settings)
            await session.connect(PortConfig(baud_rate=115200))
            fake = FakeSerial.instances[0]
            fake.incoming.put(b"boot ok\r\n")
            await asyncio.sleep(0.1)
            text = session.plain_text()
            fake.incoming.put(serial.SerialException("device disconnected"))
            await asyncio.sleep(0.1)
            return text, session.state, fake.is_open, session._read_task.done()

        text, state, is_open, loop_done = asyncio.run(scenario())
        assert text == "boot ok\r\n"
        assert state is SessionState.IDLE
        assert is_open is False
        assert loop_done

    def test_disconnect_stops_blocking_read(self, settings):
        async def scenario():
            session = ByteSession(SerialTransport(CFG), settings)
            await session.connect(PortConfig(baud_rate=115200))
            await session.write("hi", append_crlf=False)
            await asyncio.sleep(0.05)
            ok = await session.disconnect()
            fake = FakeSerial.instances[0]
            return ok, session.state, bytes(fake.written), fake.is_open

        ok, state, written, is_open = asyncio.run(scenario())
        assert ok is True
        assert state is SessionState.IDLE
        assert written == b"hi"
        assert is_open is False
