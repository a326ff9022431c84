from enum import Enum

BAUD_RATES = (4800, 9600, 14400, 19200, 38400, 57600, 115200, 128000,
              230400, 256000, 460800, 512000, 576000, 921600)
DATA_BITS  = (7, 8)
STOP_BITS  = (1, 2)
LINE_WIDTHS = (8, 10, 16)            # байт в строке hex-дампа


class FlowControl(str, Enum):
    NONE     = "none"
    HARDWARE = "hardware"            # RTS/CTS


class Parity(str, Enum):
    NONE = "none"
    EVEN = "even"
    ODD  = "odd"


class Severity(str, Enum):
    INFO    = "info"
    SUCCESS = "success"
    ERROR   = "error"


class SessionState(str, Enum):
    IDLE       = "idle"
    CONNECTING = "connecting"
    OPEN       = "open"
    CLOSING    = "closing"
    CLOSED     = "idle"              # alias: a closed session rests in IDLE
    FAULTED    = "faulted"           # fatal read error, port still held
