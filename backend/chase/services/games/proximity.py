"""Proximity rules: capture validation, geofence and bonus-area entry."""
import enum
from dataclasses import dataclass
from typing import Iterable, Optional

from chase.models import Area, BonusArea, Location, Player
from .geometry import distance_between, in_circle


class CatchOutcome(str, enum.Enum):
    CAPTURED = 'CAPTURED'
    TOO_FAR = 'TOO_FAR'
    NOT_PURSUER = 'NOT_PURSUER'
    TARGET_NOT_FOUND = 'TARGET_NOT_FOUND'
    TARGET_NOT_EVADER = 'TARGET_NOT_EVADER'
    ALREADY_CAPTURED = 'ALREADY_CAPTURED'
    OUT_OF_BOUNDS = 'OUT_OF_BOUNDS'
    LOCATION_UNAVAILABLE = 'LOCATION_UNAVAILABLE'
    NOT_IN_PROGRESS = 'NOT_IN_PROGRESS'


_MESSAGES = {
    CatchOutcome.NOT_PURSUER: 'Only pursuers can catch evaders',
    CatchOutcome.TARGET_NOT_FOUND: 'Player not found',
    CatchOutcome.TARGET_NOT_EVADER: 'Can only catch evaders',
    CatchOutcome.ALREADY_CAPTURED: 'Evader already captured',
    CatchOutcome.OUT_OF_BOUNDS: 'You are out of bounds',
    CatchOutcome.LOCATION_UNAVAILABLE: 'Location not available',
    CatchOutcome.NOT_IN_PROGRESS: 'Game not in progress',
}


@dataclass(frozen=True)
class CatchResult:
    outcome: CatchOutcome
    distance: Optional[float] = None

    @property
    def captured(self) -> bool:
        return self.outcome is CatchOutcome.CAPTURED

    def to_dict(self):
        if self.outcome in (CatchOutcome.CAPTURED, CatchOutcome.TOO_FAR):
            return {'success': self.captured, 'captured': self.captured, 'distance': self.distance}
        return {'success': False, 'error': _MESSAGES[self.outcome], 'code': self.outcome.value}


def evaluate_catch(captor: Player, target: Optional[Player], threshold_m: float = 50.0) -> CatchResult:
    """Validate a catch in order and measure the distance when all checks pass.

    Only reads the players; applying the capture is up to the caller.
    """
    if not captor.is_pursuer:
        return CatchResult(CatchOutcome.NOT_PURSUER)
    if target is None:
        return CatchResult(CatchOutcome.TARGET_NOT_FOUND)
    if not target.is_evader:
        return CatchResult(CatchOutcome.TARGET_NOT_EVADER)
    if target.is_captured:
        return CatchResult(CatchOutcome.ALREADY_CAPTURED)
    if captor.is_out_of_bounds:
        return CatchResult(CatchOutcome.OUT_OF_BOUNDS)
    if captor.location is None or target.location is None:
        return CatchResult(CatchOutcome.LOCATION_UNAVAILABLE)

    distance = distance_between(captor.location, target.location)
    if distance > threshold_m:
        return CatchResult(CatchOutcome.TOO_FAR, distance)
    return CatchResult(CatchOutcome.CAPTURED, distance)


def is_out_of_bounds(location: Location, area: Optional[Area]) -> bool:
    # No geofence has been drawn yet, so nothing is out
    if area is None:
        return False
    return not in_circle(location, area.center, area.radius_meters)


def find_entered_bonus_area(player: Player, location: Location,
                            bonus_areas: Iterable[BonusArea]) -> Optional[BonusArea]:
    """First active bonus area containing the location, for evaders only."""
    if not player.is_evader:
        return None
    for bonus in bonus_areas:
        if bonus.is_active and in_circle(location, bonus.center, bonus.radius_meters):
            return bonus
    return None
