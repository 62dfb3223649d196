"""Single entry point for every zone query the orchestrator makes."""

from typing import FrozenSet, Optional


class ZoneLookup:
    """Combine firewalld zone information with per-connection zone bindings."""

    def __init__(self, zone_info, zone_for_connection):
        self.zone_info = zone_info
        self.zone_for_connection = zone_for_connection

    async def list_zones(self) -> FrozenSet[str]:
        return await self.zone_info.get_zones()

    async def get_default_zone(self) -> str:
        return await self.zone_info.get_default_zone()

    async def get_current_zone(self, connection_settings) -> Optional[str]:
        return await self.zone_for_connection.get_zone(connection_settings)

    async def apply_zone(self, connection_settings, zone: Optional[str]):
        await self.zone_for_connection.set_zone(connection_settings, zone)
