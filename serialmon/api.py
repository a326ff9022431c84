import asyncio
import os

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse

from .logging_config import setup_logging, get_logger

setup_logging(
    log_level=os.getenv("SERIAL_MONITOR_LOG_LEVEL", "DEBUG"),
    log_to_file=os.getenv("SERIAL_MONITOR_LOG_TO_FILE", "1") == "1",
)

api_log = get_logger("API")

from .config import Settings, get_settings
from .enums import BAUD_RATES, DATA_BITS, LINE_WIDTHS, STOP_BITS, FlowControl, Parity, SessionState
from .models import LineWidthRq, Notification, PortConfig, SessionSnapshot, WriteRq
from .port.loopback import LoopbackTransport
from .port.serial_port import SerialTransport, list_ports
from .port.transport import PortTransport
from .session import ByteSession


def build_transport(settings: Settings) -> PortTransport:
    if settings.transport == "loopback":
        return LoopbackTransport()
    return SerialTransport()


app = FastAPI(title="Serial Monitor API", version="1.0.0")
session = ByteSession(build_transport(get_settings()))


def _snapshot() -> SessionSnapshot:
    return SessionSnapshot(
        state=session.state,
        config=session.config,
        received_bytes=session.received_bytes,
        line_width=session.line_width,
    )


# ────────── lifecycle
@app.on_event("shutdown")
async def _shutdown():
    api_log.info("=== APPLICATION SHUTDOWN ===")
    await session.disconnect()


# ────────── порты и справочники
@app.get("/ports")
async def get_ports():
    """Serial ports visible to pyserial"""
    return list_ports()


@app.get("/options")
async def get_options():
    """Values a UI may offer for port parameters and the hex view"""
    return {
        "baud_rates": list(BAUD_RATES),
        "data_bits": list(DATA_BITS),
        "flow_control": [f.value for f in FlowControl],
        "parity": [p.value for p in Parity],
        "stop_bits": list(STOP_BITS),
        "line_widths": list(LINE_WIDTHS),
    }


# ────────── сессия
@app.get("/session", response_model=SessionSnapshot)
async def get_session():
    return _snapshot()


@app.post("/session/connect", response_model=SessionSnapshot)
async def do_connect(body: PortConfig):
    api_log.info("=== CONNECT REQUEST ===")
    api_log.info("Request: %s", body.model_dump())
    if session.state is not SessionState.IDLE:
        raise HTTPException(409, f"Session is {session.state.value}")
    await session.connect(body)
    return _snapshot()


@app.post("/session/disconnect", response_model=SessionSnapshot)
async def do_disconnect():
    api_log.info("=== DISCONNECT REQUEST ===")
    if not await session.disconnect():
        raise HTTPException(409, f"Session is {session.state.value}")
    return _snapshot()


@app.post("/session/write")
async def do_write(body: WriteRq):
    api_log.info("Write request: %r (crlf=%s)", body.text, body.add_crlf)
    if session.state is not SessionState.OPEN:
        raise HTTPException(409, f"Session is {session.state.value}")
    ok = await session.write(body.text, body.add_crlf)
    return {"ok": ok}


@app.post("/session/clear", response_model=SessionSnapshot)
async def do_clear():
    if not session.clear():
        raise HTTPException(409, "Disconnect before clearing")
    return _snapshot()


@app.put("/session/line-width", response_model=SessionSnapshot)
async def set_line_width(body: LineWidthRq):
    try:
        session.set_line_width(body.width)
    except ValueError as e:
        raise HTTPException(422, str(e))
    return _snapshot()


@app.get("/session/text", response_class=PlainTextResponse)
async def get_text():
    return session.plain_text()


@app.get("/session/hexdump", response_class=PlainTextResponse)
async def get_hexdump():
    return session.hex_dump()


@app.get("/notifications", response_model=list[Notification])
async def get_notifications():
    return session.notifications.items()


# ────────── поток событий
@app.websocket("/ws")
async def ws_endpoint(ws: WebSocket):
    api_log.info("=== WebSocket Connection ===")
    await ws.accept()

    forward = asyncio.create_task(_forward_events(ws))
    try:
        while True:
            message = await ws.receive_text()
            api_log.debug("Received WebSocket message: %s", message)
    except WebSocketDisconnect:
        api_log.info("WebSocket disconnected")
    finally:
        forward.cancel()


async def _forward_events(ws: WebSocket):
    api_log.info("Starting event forwarding to WebSocket")
    try:
        while True:
            ev = await session.events.get()
            await ws.send_json(ev)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        api_log.error("Error forwarding event: %s", e)


if __name__ == "__main__":
    s = get_settings()
    uvicorn.run("serialmon.api:app", host=s.api_host, port=s.api_port, log_level="debug")
