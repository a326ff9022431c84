#!/usr/bin/env python3
"""
Serial port diagnostic tool: lists ports and probes each one through a
monitor session (open, send a probe line, show what came back).
"""

import asyncio
import sys

import serial.tools.list_ports

from serialmon.config import get_settings
from serialmon.logging_config import setup_logging
from serialmon.models import PortConfig
from serialmon.port.config_ext import PortCfg
from serialmon.port.serial_port import SerialTransport
from serialmon.session import ByteSession

PROBE = "AT"            # \r\n добавит сессия
BAUD = 9600
WAIT = 0.5              # сек на ответ


def list_serial_ports():
    """List all available serial ports"""
    print("Available serial ports:")
    ports = serial.tools.list_ports.comports()

    for port in ports:
        print(f"  {port.device} - {port.description}")
        if port.manufacturer:
            print(f"    Manufacturer: {port.manufacturer}")
        if port.serial_number:
            print(f"    Serial Number: {port.serial_number}")
        print()
    return [p.device for p in ports]


async def probe_port(port_name: str, baud_rate: int = BAUD) -> bool:
    """Open the port through a session, send the probe and dump the answer"""
    print(f"Testing port {port_name} at {baud_rate} baud...")
    settings = get_settings().model_copy(update={"line_width": 16})
    session = ByteSession(SerialTransport(PortCfg(serial_port=port_name)), settings)

    if not await session.connect(PortConfig(baud_rate=baud_rate)):
        for n in session.notifications.items():
            print(f"❌ {n.message}")
        return False

    print(f"✅ Successfully opened {port_name}")
    await session.write(PROBE)
    await asyncio.sleep(WAIT)
    await session.disconnect()

    if session.received:
        print("   Response:")
        print(session.hex_dump())
    else:
        print("   No response to test command")
    return True


async def main():
    print("🔧 Serial Port Diagnostic Tool\n")
    setup_logging(log_level="WARNING", log_to_file=False)

    ports = sys.argv[1:] or list_serial_ports()
    working_ports = [p for p in ports if await probe_port(p)]

    if working_ports:
        print(f"\n✅ Working ports found: {working_ports}")
        print(f"\n🔧 To use this port, set environment variable:")
        print(f"export SERIAL_PORT={working_ports[0]}")
    else:
        print("\n❌ No working serial ports found")
        print("Check:")
        print("1. USB-to-serial adapter is connected")
        print("2. Device is powered on")
        print("3. Correct drivers are installed")


if __name__ == "__main__":
    asyncio.run(main())
