"""Abstract port transport consumed by the byte session."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from ..models import PortConfig

Hook = Callable[[], None]


@dataclass(frozen=True)
class ReadResult:
    data: bytes = b""
    done: bool = False      # end-of-stream


class PortReader(ABC):
    @abstractmethod
    async def read(self) -> ReadResult:
        """Wait for the next chunk.

        Raises DisconnectError, TransientReadError or ReadError.
        """

    @abstractmethod
    async def cancel(self) -> None:
        """Make a pending (or the next) read return end-of-stream."""


class PortWriter(ABC):
    @abstractmethod
    async def write(self, data: bytes) -> None:
        """Raises WriteError."""

    @abstractmethod
    async def close(self) -> None:
        ...


class PortHandle(ABC):
    """One selected port. Reader and writer are handed out once each."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._disconnect_hooks: list[Hook] = []
        self._connect_hooks: list[Hook] = []

    @abstractmethod
    async def open(self, config: PortConfig) -> None:
        """Raises InvalidStateError or PortOpenError."""

    @abstractmethod
    def reader(self) -> PortReader:
        ...

    @abstractmethod
    def writer(self) -> PortWriter:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    def on_disconnect(self, callback: Hook) -> None:
        self._disconnect_hooks.append(callback)

    def on_connect(self, callback: Hook) -> None:
        self._connect_hooks.append(callback)

    def _fire(self, hooks: list[Hook]) -> None:
        for cb in list(hooks):
            cb()


class PortTransport(ABC):
    @abstractmethod
    async def request_port(self) -> PortHandle:
        """Pick a port. Raises NoSelectionError when there is nothing to pick."""
