#!/usr/bin/env python3
"""
live_monitor.py – терминальный монитор порта.

Открывает сессию, печатает всё, что приходит (текстом или hex-дампом),
строки из stdin уходят в порт (escape-последовательности разрешены).
Ctrl+C / EOF – отключиться и выйти.
"""

import argparse
import asyncio
import codecs
import sys

from serialmon.config import get_settings
from serialmon.enums import BAUD_RATES, LINE_WIDTHS, SessionState
from serialmon.logging_config import setup_logging
from serialmon.models import PortConfig
from serialmon.port.config_ext import PortCfg, get as get_port_cfg
from serialmon.port.loopback import LoopbackTransport
from serialmon.port.serial_port import SerialTransport
from serialmon.session import ByteSession


def parse_args():
    p = argparse.ArgumentParser(description="Serial port monitor")
    p.add_argument("port", nargs="?", help="device, e.g. /dev/ttyUSB0 or COM3 (default: first found)")
    p.add_argument("-b", "--baud", type=int, default=115200, choices=BAUD_RATES)
    p.add_argument("--data-bits", type=int, default=8, choices=[7, 8])
    p.add_argument("--parity", default="none", choices=["none", "even", "odd"])
    p.add_argument("--stop-bits", type=int, default=1, choices=[1, 2])
    p.add_argument("--rtscts", action="store_true", help="hardware flow control")
    p.add_argument("--hex", action="store_true", help="show hex dump instead of text")
    p.add_argument("--width", type=int, default=16, choices=LINE_WIDTHS)
    p.add_argument("--no-crlf", action="store_true", help="do not append CRLF to sent lines")
    p.add_argument("--loopback", action="store_true", help="no hardware, echo sent data back")
    return p.parse_args()


async def print_events(session: ByteSession, hex_mode: bool):
    shown = 0       # сколько уже напечатано из дампа
    # символ UTF-8 может прийти по частям: хвост ждёт следующего чанка
    decoder = codecs.getincrementaldecoder(session.settings.text_encoding)(errors="replace")
    while True:
        ev = await session.events.get()
        if ev["type"] == "notification":
            print(f"\n[{ev['severity']}] {ev['message']}", file=sys.stderr)
            continue
        if ev["type"] != "rx":
            continue
        if hex_mode:
            # незаконченная строка перерисовывается – печатаем только закрытые
            dump = session.hex_dump()
            closed = dump[:dump.rfind("\r\n") + 2] if "\r\n" in dump else ""
            sys.stdout.write(closed[shown:])
            shown = len(closed)
        else:
            sys.stdout.write(decoder.decode(bytes.fromhex(ev["data"])))
        sys.stdout.flush()


async def main():
    args = parse_args()
    setup_logging(log_level="WARNING", log_to_file=False)

    if args.loopback:
        transport = LoopbackTransport()
    else:
        cfg = get_port_cfg()
        if args.port:
            cfg = PortCfg(**{**cfg.model_dump(), "serial_port": args.port})
        transport = SerialTransport(cfg)

    settings = get_settings().model_copy(update={"line_width": args.width})
    session = ByteSession(transport, settings)
    config = PortConfig(
        baud_rate=args.baud,
        data_bits=args.data_bits,
        parity=args.parity,
        stop_bits=args.stop_bits,
        flow_control="hardware" if args.rtscts else "none",
    )

    printer = asyncio.create_task(print_events(session, args.hex))
    if not await session.connect(config):
        await asyncio.sleep(0.1)        # дать напечатать уведомление
        printer.cancel()
        return 1

    loop = asyncio.get_running_loop()
    try:
        while session.state is SessionState.OPEN:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            await session.write(line.rstrip("\r\n"), append_crlf=not args.no_crlf)
    finally:
        await session.disconnect()
        await asyncio.sleep(0.1)
        printer.cancel()
        if args.hex:
            # хвост – незаконченная строка
            dump = session.hex_dump()
            print(dump[dump.rfind("\r\n") + 2:] if "\r\n" in dump else dump)
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nStopped.")
