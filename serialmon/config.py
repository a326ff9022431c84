import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field

ENV_PREFIX = "SERIAL_MONITOR_"


class Settings(BaseModel):
    transport: Literal["serial", "loopback"] = Field("serial")
    line_width: int = Field(16)
    notification_lifetime: float = 6.0     # сек до авто-удаления
    event_queue_size: int = 1000
    text_encoding: str = "utf-8"
    api_host: str = Field("0.0.0.0")
    api_port: int = Field(8000)


def _from_env() -> dict:
    values = {}
    for name in Settings.model_fields:
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is not None:
            values[name] = raw          # pydantic приведёт типы
    return values


@lru_cache
def get_settings() -> Settings:
    return Settings(**_from_env())
