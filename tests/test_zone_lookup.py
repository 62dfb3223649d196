import asyncio

from zonedefense.zone_lookup import ZoneLookup


class DummyZoneInfo:
    async def get_zones(self):
        return frozenset({"home", "public"})

    async def get_default_zone(self):
        return "public"


class DummyZoneForConnection:
    def __init__(self):
        self.zones = {"/settings/1": "home"}

    async def get_zone(self, path):
        return self.zones.get(path)

    async def set_zone(self, path, zone):
        self.zones[path] = zone


def test_lookup_combines_firewalld_and_connection_zone():
    zone_for_connection = DummyZoneForConnection()
    lookup = ZoneLookup(DummyZoneInfo(), zone_for_connection)

    async def scenario():
        result = (
            await lookup.list_zones(),
            await lookup.get_default_zone(),
            await lookup.get_current_zone("/settings/1"),
            await lookup.get_current_zone("/settings/2"),
        )
        await lookup.apply_zone("/settings/2", "public")
        await lookup.apply_zone("/settings/1", None)
        return result

    zones, default, current, missing = asyncio.run(scenario())
    assert zones == {"home", "public"}
    assert default == "public"
    assert current == "home"
    assert missing is None
    assert zone_for_connection.zones == {"/settings/1": None, "/settings/2": "public"}
