import enum
import random
import re
import string
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from chase.errors import ValidationError

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
_ROOM_CODE_RE = re.compile(r'^[A-Z0-9]{6}$')


class Role(str, enum.Enum):
    PURSUER = 'PURSUER'
    EVADER = 'EVADER'


class GameStatus(str, enum.Enum):
    LOBBY = 'LOBBY'
    IN_PROGRESS = 'IN_PROGRESS'
    ENDED = 'ENDED'


class EndReason(str, enum.Enum):
    ALL_CAPTURED = 'ALL_CAPTURED'
    HOST_ENDED = 'HOST_ENDED'
    TIME_UP = 'TIME_UP'


def generate_room_code(length=ROOM_CODE_LENGTH, rng=random):
    """Generate a random room code. Uniqueness is the registry's job."""
    return ''.join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def is_valid_room_code(code) -> bool:
    return isinstance(code, str) and bool(_ROOM_CODE_RE.match(code))


def _number(data, key):
    value = data.get(key) if isinstance(data, dict) else None
    # bool is an int subclass; a JSON true is not a coordinate
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f'{key} must be a number')
    return float(value)


def _coordinates(data):
    latitude = _number(data, 'latitude')
    longitude = _number(data, 'longitude')
    if not -90.0 <= latitude <= 90.0:
        raise ValidationError('latitude out of range')
    if not -180.0 <= longitude <= 180.0:
        raise ValidationError('longitude out of range')
    return latitude, longitude


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, data):
        return cls(*_coordinates(data))

    def to_dict(self):
        return {'latitude': self.latitude, 'longitude': self.longitude}


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    timestamp: int

    @classmethod
    def from_dict(cls, data, default_timestamp: int):
        latitude, longitude = _coordinates(data)
        timestamp = data.get('timestamp')
        if timestamp is None:
            timestamp = default_timestamp
        elif isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValidationError('timestamp must be a number')
        return cls(latitude, longitude, int(timestamp))

    @property
    def point(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    def to_dict(self):
        return {'latitude': self.latitude, 'longitude': self.longitude, 'timestamp': self.timestamp}


@dataclass(frozen=True)
class Area:
    center: Coordinate
    radius_meters: float

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError('area is required')
        center = Coordinate.from_dict(data.get('center'))
        radius = _number(data, 'radiusMeters')
        if radius <= 0:
            raise ValidationError('radiusMeters must be positive')
        return cls(center, radius)

    def to_dict(self):
        return {'center': self.center.to_dict(), 'radiusMeters': self.radius_meters}


@dataclass
class BonusArea:
    id: str
    center: Coordinate
    radius_meters: float
    is_active: bool = True

    def to_dict(self):
        return {
            'id': self.id,
            'center': self.center.to_dict(),
            'radiusMeters': self.radius_meters,
            'isActive': self.is_active,
        }


@dataclass
class Player:
    id: str
    handle: str  # transport connection id, for targeted delivery
    name: str
    is_host: bool = False
    role: Optional[Role] = None
    location: Optional[Location] = None
    is_captured: bool = False
    is_out_of_bounds: bool = False
    last_location_update: int = 0

    @property
    def is_evader(self) -> bool:
        return self.role is Role.EVADER

    @property
    def is_pursuer(self) -> bool:
        return self.role is Role.PURSUER

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role.value if self.role else None,
            'location': self.location.to_dict() if self.location else None,
            'isHost': self.is_host,
            'isCaptured': self.is_captured,
            'isOutOfBounds': self.is_out_of_bounds,
        }


@dataclass
class RevealState:
    is_revealing: bool = False
    next_reveal_at: Optional[int] = None
    # Reveals never expire on their own; kept for the client contract
    reveals_end_at: Optional[int] = None
    snapshot: List[dict] = field(default_factory=list)

    def to_dict(self):
        return {
            'isRevealing': self.is_revealing,
            'nextRevealAt': self.next_reveal_at,
            'revealEndsAt': self.reveals_end_at,
        }


@dataclass
class Room:
    code: str
    host_id: str
    created_at: int
    status: GameStatus = GameStatus.LOBBY
    area: Optional[Area] = None
    players: Dict[str, Player] = field(default_factory=dict)
    movements: Dict[str, List[Location]] = field(default_factory=dict)
    bonus_areas: List[BonusArea] = field(default_factory=list)
    bonus_reveal_state: Dict[str, int] = field(default_factory=dict)
    game_duration_ms: Optional[int] = None
    reveal_state: RevealState = field(default_factory=RevealState)
    started_at: Optional[int] = None
    ended_at: Optional[int] = None
    # Serializes every mutation of this room: handlers, reveal loop and game timer
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def players_with_role(self, role: Role) -> List[Player]:
        return [p for p in self.players.values() if p.role is role]

    @property
    def pursuers(self) -> List[Player]:
        return self.players_with_role(Role.PURSUER)

    @property
    def evaders(self) -> List[Player]:
        return self.players_with_role(Role.EVADER)

    def all_evaders_captured(self) -> bool:
        evaders = self.evaders
        return len(evaders) > 0 and all(p.is_captured for p in evaders)

    def to_dict(self):
        return {
            'code': self.code,
            'hostId': self.host_id,
            'status': self.status.value,
            'area': self.area.to_dict() if self.area else None,
            'players': [p.to_dict() for p in self.players.values()],
            'startedAt': self.started_at,
            'gameDurationMs': self.game_duration_ms,
            'revealState': self.reveal_state.to_dict(),
            'bonusAreas': [b.to_dict() for b in self.bonus_areas],
        }

    def summary(self):
        return {
            'code': self.code,
            'status': self.status.value,
            'playerCount': len(self.players),
            'hasArea': self.area is not None,
            'createdAt': self.created_at,
        }
