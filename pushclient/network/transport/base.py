"""Transport abstractions for the push service socket."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping


class BaseTransport(ABC):
    """Abstract message-framed connection owned by one session at a time."""

    @abstractmethod
    async def connect(self, url: str, headers: Mapping[str, str]) -> None:
        ...

    @abstractmethod
    async def receive(self) -> str | bytes:
        ...

    @abstractmethod
    async def ping(self, timeout: float) -> None:
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        ...
