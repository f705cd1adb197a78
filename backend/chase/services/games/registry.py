"""In-memory room registry.

Owns the code -> Room map. Every mutator takes the room's lock, so callers
may hold the same lock around several calls (it is re-entrant). Expected
misses (unknown room/player, wrong status) are reported through the return
value, never raised.
"""
import enum
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from chase.models import (
    Area, BonusArea, GameStatus, Location, Player, Role, Room, generate_room_code,
)
from .bonus import BonusAreaGenerator
from .proximity import is_out_of_bounds


def now_ms() -> int:
    return int(time.time() * 1000)


class JoinRejection(str, enum.Enum):
    ROOM_NOT_FOUND = 'ROOM_NOT_FOUND'
    GAME_ALREADY_STARTED = 'GAME_ALREADY_STARTED'


class RoomRegistry:
    def __init__(self, clock: Callable[[], int] = now_ms,
                 code_factory: Callable[[], str] = generate_room_code,
                 bonus_generator: Optional[BonusAreaGenerator] = None,
                 bonus_area_count: int = 3,
                 reveal_interval_ms: int = 120000,
                 logger=None):
        self.clock = clock
        self.code_factory = code_factory
        self.bonus_generator = bonus_generator or BonusAreaGenerator()
        self.bonus_area_count = bonus_area_count
        self.reveal_interval_ms = reveal_interval_ms
        self.logger = logger or logging.getLogger(__name__)
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.RLock()

    # ---- lookup ----

    def get_room(self, code) -> Optional[Room]:
        if not isinstance(code, str):
            return None
        with self._lock:
            return self._rooms.get(code.upper())

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    def codes(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def __len__(self):
        return len(self._rooms)

    @contextmanager
    def locked(self, code) -> Iterator[Optional[Room]]:
        """Hold the room's lock; yields None if the room is gone."""
        room = self.get_room(code)
        if room is None:
            yield None
            return
        with room.lock:
            # It may have been deleted while we waited
            with self._lock:
                alive = self._rooms.get(room.code) is room
            yield room if alive else None

    # ---- lifecycle ----

    def _unique_code(self) -> str:
        while True:
            code = self.code_factory()
            if code not in self._rooms:
                return code

    def create_room(self, host_name: str, handle: str) -> Room:
        host = Player(id=str(uuid.uuid4()), handle=handle, name=host_name, is_host=True)
        with self._lock:
            room = Room(code=self._unique_code(), host_id=host.id, created_at=self.clock())
            room.players[host.id] = host
            self._rooms[room.code] = room
        self.logger.info(f"[room-create] room={room.code} host={host.id}")
        return room

    def delete_room(self, code) -> Optional[Room]:
        if not isinstance(code, str):
            return None
        with self._lock:
            room = self._rooms.pop(code.upper(), None)
        if room:
            self.logger.info(f"[room-delete] room={room.code}")
        return room

    def add_player(self, code, name: str, handle: str) -> Union[Player, JoinRejection]:
        with self.locked(code) as room:
            if room is None:
                return JoinRejection.ROOM_NOT_FOUND
            if room.status is not GameStatus.LOBBY:
                return JoinRejection.GAME_ALREADY_STARTED
            player = Player(id=str(uuid.uuid4()), handle=handle, name=name)
            room.players[player.id] = player
            return player

    def remove_player(self, code, player_id: str) -> Optional[Player]:
        """Remove a player; the room goes away with its last player."""
        with self.locked(code) as room:
            if room is None:
                return None
            player = room.players.pop(player_id, None)
            if player and not room.players:
                self.delete_room(room.code)
            return player

    # ---- lobby configuration ----

    def update_role(self, code, player_id: str, role: Role) -> bool:
        with self.locked(code) as room:
            if room is None or room.status is not GameStatus.LOBBY:
                return False
            player = room.players.get(player_id)
            if player is None:
                return False
            player.role = role
            return True

    def update_area(self, code, area: Area) -> bool:
        with self.locked(code) as room:
            if room is None or room.status is not GameStatus.LOBBY:
                return False
            room.area = area
            return True

    def set_duration(self, code, duration_ms: Optional[int]) -> bool:
        with self.locked(code) as room:
            if room is None or room.status is not GameStatus.LOBBY:
                return False
            room.game_duration_ms = duration_ms
            return True

    def update_player_handle(self, code, player_id: str, handle: str) -> bool:
        with self.locked(code) as room:
            player = room.players.get(player_id) if room else None
            if player is None:
                return False
            player.handle = handle
            return True

    def transfer_host(self, code, player_id: str) -> bool:
        with self.locked(code) as room:
            if room is None or player_id not in room.players:
                return False
            previous = room.players.get(room.host_id)
            if previous:
                previous.is_host = False
            room.host_id = player_id
            room.players[player_id].is_host = True
            return True

    # ---- game ----

    def start_game(self, code) -> bool:
        """LOBBY -> IN_PROGRESS, only with an area and every player holding a role.

        Also places the bonus areas and arms the first reveal.
        """
        with self.locked(code) as room:
            if room is None or room.status is not GameStatus.LOBBY:
                return False
            if room.area is None or not room.players:
                return False
            if any(p.role is None for p in room.players.values()):
                return False
            now = self.clock()
            room.status = GameStatus.IN_PROGRESS
            room.started_at = now
            room.reveal_state.next_reveal_at = now + self.reveal_interval_ms
            room.bonus_areas = self.bonus_generator.generate(room.area, self.bonus_area_count)
            self.logger.info(f"[game-start] room={room.code} bonus_areas={len(room.bonus_areas)}")
            return True

    def end_game(self, code) -> bool:
        """IN_PROGRESS -> ENDED. False if the game is not running, so ending is idempotent."""
        with self.locked(code) as room:
            if room is None or room.status is not GameStatus.IN_PROGRESS:
                return False
            room.status = GameStatus.ENDED
            room.ended_at = self.clock()
            return True

    def update_location(self, code, player_id: str, location: Location) -> Optional[Player]:
        """Store an accepted location, refresh the geofence flag and append to the path."""
        with self.locked(code) as room:
            player = room.players.get(player_id) if room else None
            if player is None:
                return None
            player.location = location
            player.last_location_update = self.clock()
            player.is_out_of_bounds = is_out_of_bounds(location, room.area)
            room.movements.setdefault(player_id, []).append(location)
            return player

    def capture_player(self, code, player_id: str) -> bool:
        with self.locked(code) as room:
            player = room.players.get(player_id) if room else None
            if player is None or player.is_captured:
                return False
            player.is_captured = True
            return True

    def update_reveal_state(self, code, is_revealing: bool, next_reveal_at: Optional[int],
                            snapshot: Optional[List[dict]] = None) -> bool:
        with self.locked(code) as room:
            if room is None:
                return False
            room.reveal_state.is_revealing = is_revealing
            room.reveal_state.next_reveal_at = next_reveal_at
            room.reveal_state.reveals_end_at = None
            room.reveal_state.snapshot = list(snapshot or [])
            return True

    def remove_bonus_area(self, code, bonus_area_id: str) -> Optional[BonusArea]:
        with self.locked(code) as room:
            if room is None:
                return None
            for index, bonus in enumerate(room.bonus_areas):
                if bonus.id == bonus_area_id:
                    bonus.is_active = False
                    return room.bonus_areas.pop(index)
            return None

    def mark_bonus_reveal(self, code, player_id: str, revealed_until: int) -> bool:
        with self.locked(code) as room:
            if room is None or player_id not in room.players:
                return False
            room.bonus_reveal_state[player_id] = revealed_until
            return True


class ConnectionIndex:
    """Maps a transport handle to the (room code, player id) it speaks for."""

    def __init__(self):
        self._by_handle: Dict[str, Tuple[str, str]] = {}
        self._lock = threading.Lock()

    def bind(self, handle: str, room_code: str, player_id: str) -> List[str]:
        """Bind ``handle`` to the player. Returns the handles the player spoke through before."""
        with self._lock:
            # A player speaks through one connection at a time
            dropped = [other for other, (_, pid) in self._by_handle.items()
                       if pid == player_id and other != handle]
            for other in dropped:
                del self._by_handle[other]
            self._by_handle[handle] = (room_code, player_id)
            return dropped

    def resolve(self, handle: str) -> Optional[Tuple[str, str]]:
        with self._lock:
            return self._by_handle.get(handle)

    def unbind(self, handle: str) -> Optional[Tuple[str, str]]:
        with self._lock:
            return self._by_handle.pop(handle, None)

    def handles_for_room(self, room_code: str) -> List[str]:
        with self._lock:
            return [h for h, (code, _) in self._by_handle.items() if code == room_code]
