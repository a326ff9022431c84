import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field


class PortCfg(BaseModel):
    serial_port:  Optional[str] = Field(None)   # None → первый найденный порт
    chunk_size:   int   = Field(4096)
    read_timeout: float = Field(0.1)            # таймаут pyserial read(), сек
    retry_delay:  float = Field(0.05)           # пауза после transient-ошибки


@lru_cache
def get() -> PortCfg:
    values = {}
    if os.getenv("SERIAL_PORT"):
        values["serial_port"] = os.getenv("SERIAL_PORT")
    if os.getenv("SERIAL_MONITOR_READ_TIMEOUT"):
        values["read_timeout"] = os.getenv("SERIAL_MONITOR_READ_TIMEOUT")
    return PortCfg(**values)
