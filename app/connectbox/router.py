"""The three things a presenter can ask of a router."""

from abc import ABC, abstractmethod

from connectbox.models import CmState, LanUserTable


class Router(ABC):
    @abstractmethod
    async def devices(self) -> LanUserTable:
        """Current LAN client table."""

    @abstractmethod
    async def temperature(self) -> CmState:
        """Current modem temperatures and WAN state."""

    @abstractmethod
    async def logout(self) -> None:
        """End the session, if there is one."""
