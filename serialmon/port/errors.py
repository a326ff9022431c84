"""Ошибки транспортного уровня (порт, чтение, запись)."""


class TransportError(Exception):
    """Base exception for all port transport errors."""


class NoSelectionError(TransportError):
    """No port was chosen (none available or the request was declined)."""


class InvalidStateError(TransportError):
    """Port is already open, already in use, or handle already taken."""


class PortOpenError(TransportError):
    """Port could not be opened with the requested parameters."""


class DisconnectError(TransportError):
    """Device went away while reading; expected during teardown."""


class TransientReadError(TransportError):
    """Interrupted read that may be retried."""


class ReadError(TransportError):
    """Any other read failure."""


class WriteError(TransportError):
    """Write to the port failed."""
