from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import BAUD_RATES, FlowControl, Parity, SessionState, Severity


class PortConfig(BaseModel):
    """Line parameters. Frozen: a session never changes them while open."""
    model_config = ConfigDict(frozen=True)

    baud_rate:    int = Field(..., examples=[115200])
    data_bits:    Literal[7, 8] = 8
    flow_control: FlowControl = FlowControl.NONE
    parity:       Parity = Parity.NONE
    stop_bits:    Literal[1, 2] = 1

    @field_validator("baud_rate")
    @classmethod
    def _known_baud_rate(cls, v: int) -> int:
        if v not in BAUD_RATES:
            raise ValueError(f"unsupported baud rate {v}")
        return v


class Notification(BaseModel):
    severity:    Severity
    message:     str
    enqueued_at: datetime


class WriteRq(BaseModel):
    text:     str = Field(..., min_length=1, examples=["AT\\r\\x1a"])
    add_crlf: bool = True


class LineWidthRq(BaseModel):
    width: int = Field(..., gt=0, examples=[16])


class SessionSnapshot(BaseModel):
    state:          SessionState
    config:         Optional[PortConfig] = None
    received_bytes: int = 0
    line_width:     int


class Event(BaseModel):
    type: Literal["rx", "tx", "state", "notification"]

    # в зависимости от type заполнено одно из полей
    data:     Optional[str] = None        # hex
    size:     Optional[int] = None
    state:    Optional[SessionState] = None
    severity: Optional[Severity] = None
    message:  Optional[str] = None
