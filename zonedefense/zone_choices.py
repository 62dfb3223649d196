"""Entries offered by the zone prompt."""

from dataclasses import dataclass
from gettext import gettext as _
from typing import List, Optional, Tuple

from .models import ZoneSnapshot


@dataclass(frozen=True)
class ZoneChoice:
    label: str
    zone: Optional[str]  # None selects the default zone


def build_zone_choices(snapshot: ZoneSnapshot) -> Tuple[List[ZoneChoice], int]:
    """Return the prompt entries and the index to preselect.

    The first entry stands for the default zone. The connection's current
    zone is preselected; a current zone firewalld no longer lists is still
    offered so the existing binding can be kept.
    """
    choices = [ZoneChoice(_("Default ({zone})").format(zone=snapshot.default_zone), None)]
    choices.extend(ZoneChoice(zone, zone) for zone in snapshot.sorted_zones())

    current = snapshot.current_zone
    if current is None:
        return choices, 0
    if current not in snapshot.zones:
        choices.append(ZoneChoice(current, current))
    for index, choice in enumerate(choices):
        if choice.zone == current:
            return choices, index
    return choices, 0
