from __future__ import annotations

from enum import Enum


class TravelMode(str, Enum):
    WALK = "walk"
    BIKE = "bike"
    DRIVE = "drive"

    @property
    def is_vehicle(self) -> bool:
        return self is not TravelMode.WALK


class RoadCategory(str, Enum):
    """Physical class of a segment; drives default speeds and legality."""

    MOTORWAY = "motorway"
    ARTERIAL = "arterial"
    RESIDENTIAL = "residential"
    SERVICE = "service"
    CYCLEWAY = "cycleway"
    TRAIL = "trail"
    SIDEWALK = "sidewalk"


class AccessRestriction(str, Enum):
    NO_THROUGH_TRAFFIC = "no_through_traffic"
    PRIVATE = "private"
    NO_BIKES = "no_bikes"
    NO_MOTOR_VEHICLES = "no_motor_vehicles"
    NO_PEDESTRIANS = "no_pedestrians"


# Restrictions that only penalise entering the zone, rather than forbidding it.
ZONE_RESTRICTIONS = frozenset(
    {AccessRestriction.NO_THROUGH_TRAFFIC, AccessRestriction.PRIVATE}
)


class TurnControl(str, Enum):
    PROTECTED = "protected"  # signalised or conflict-free
    UNPROTECTED = "unprotected"  # must yield
