"""Game session engine.

Every command resolves the caller's connection to a player, takes the room
lock, validates, mutates through the registry and broadcasts while still
holding the lock, so room state and the order of room events stay
consistent with the reveal loop and game timers running alongside.
"""
import functools
import logging
from dataclasses import dataclass
from typing import List, Optional

from chase.errors import (
    GameInProgress, InvalidState, NotFound, NotHost, RoomNotFound, ValidationError,
)
from chase.models import (
    Area, EndReason, GameStatus, Location, Player, Role, Room, is_valid_room_code,
)
from .bonus import BonusAreaGenerator
from .proximity import CatchOutcome, CatchResult, evaluate_catch, find_entered_bonus_area
from .rate_limit import LocationRateLimiter
from .registry import ConnectionIndex, JoinRejection, RoomRegistry, now_ms
from .scheduler import RevealScheduler, TaskScheduler
from .settings import GameSettings
from .summary import build_game_summary

MAX_NAME_LENGTH = 40
MAX_CHAT_LENGTH = 500


@dataclass(frozen=True)
class JoinResult:
    room_code: str
    player_id: str
    room: dict


def _clean_text(value, field_name, max_length):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{field_name} is required')
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f'{field_name} is too long')
    return value


class GameEngine:
    def __init__(self, registry: RoomRegistry, broadcaster, timers: TaskScheduler,
                 rate_limiter: LocationRateLimiter, settings: GameSettings = None,
                 clock=now_ms, logger=None):
        self.registry = registry
        self.broadcaster = broadcaster
        self.timers = timers
        self.rate_limiter = rate_limiter
        self.settings = settings or GameSettings()
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.connections = ConnectionIndex()
        self.reveal_scheduler: Optional[RevealScheduler] = None

    @classmethod
    def create(cls, broadcaster, settings: GameSettings = None, clock=now_ms,
               start_task=None, sleep=None, rng=None, logger=None):
        """Wire a complete engine: registry, rate limiter, game timers and reveal loop."""
        settings = settings or GameSettings()
        logger = logger or logging.getLogger(__name__)
        registry = RoomRegistry(
            clock=clock,
            bonus_generator=BonusAreaGenerator.from_settings(settings, rng=rng),
            bonus_area_count=settings.bonus_area_count,
            reveal_interval_ms=settings.reveal_interval_ms,
            logger=logger,
        )
        engine = cls(
            registry,
            broadcaster,
            TaskScheduler(start_task=start_task, sleep=sleep, logger=logger),
            LocationRateLimiter(settings.location_update_interval_ms),
            settings=settings,
            clock=clock,
            logger=logger,
        )
        engine.reveal_scheduler = RevealScheduler(
            engine.run_reveal_tick,
            interval_sec=settings.reveal_tick_sec,
            start_task=start_task,
            sleep=sleep,
            logger=logger,
        )
        return engine

    # ---- helpers ----

    def _resolve(self, handle):
        ctx = self.connections.resolve(handle)
        if ctx is None:
            raise NotFound('You are not in a room')
        return ctx

    @staticmethod
    def _member(room: Room, player_id: str) -> Player:
        player = room.players.get(player_id)
        if player is None:
            raise NotFound()
        return player

    @staticmethod
    def _require_host(room: Room, player_id: str, action: str) -> None:
        if room.host_id != player_id:
            raise NotHost(f'Only host can {action}')

    def broadcast_room_state(self, room: Room) -> None:
        self.broadcaster.to_room(room.code, 'roomState', room.to_dict())

    # ---- room membership ----

    def create_room(self, handle: str, player_name) -> JoinResult:
        name = _clean_text(player_name, 'playerName', MAX_NAME_LENGTH)
        self._leave_current(handle)
        room = self.registry.create_room(name, handle)
        with self.registry.locked(room.code) as room:
            self.connections.bind(handle, room.code, room.host_id)
            self.broadcaster.enter(handle, room.code)
            self.logger.info(f"[create] room={room.code} player={room.host_id} name={name!r}")
            self.broadcast_room_state(room)
            return JoinResult(room.code, room.host_id, room.to_dict())

    def join_room(self, handle: str, room_code, player_name) -> JoinResult:
        """Add the caller to a lobby; a rejected join leaves any current membership untouched."""
        name = _clean_text(player_name, 'playerName', MAX_NAME_LENGTH)
        code = room_code.strip().upper() if isinstance(room_code, str) else None
        if not is_valid_room_code(code):
            raise RoomNotFound()
        previous = self.connections.resolve(handle)
        if previous is not None and previous[0] == code:
            raise InvalidState('Already in this room')
        with self.registry.locked(code) as room:
            if room is None:
                raise RoomNotFound()
            result = self.registry.add_player(code, name, handle)
            if result is JoinRejection.ROOM_NOT_FOUND:
                raise RoomNotFound()
            if result is JoinRejection.GAME_ALREADY_STARTED:
                raise GameInProgress()
            self.connections.bind(handle, room.code, result.id)
            self.broadcaster.enter(handle, room.code)
            self.logger.info(f"[join] room={room.code} player={result.id} name={name!r}")
            self.broadcast_room_state(room)
            joined = JoinResult(room.code, result.id, room.to_dict())
        # Old room lock is taken only after the new one is released
        self._leave_previous(handle, previous)
        return joined

    def rejoin_room(self, handle: str, room_code, player_id) -> JoinResult:
        """Bind a new connection to a player that is still in the room."""
        if not isinstance(room_code, str) or not isinstance(player_id, str):
            raise ValidationError('roomCode and playerId are required')
        previous = self.connections.resolve(handle)
        with self.registry.locked(room_code) as room:
            if room is None:
                raise RoomNotFound()
            self._member(room, player_id)
            self.registry.update_player_handle(room.code, player_id, handle)
            for stale in self.connections.bind(handle, room.code, player_id):
                self.broadcaster.leave(stale, room.code)
            self.broadcaster.enter(handle, room.code)
            self.logger.info(f"[rejoin] room={room.code} player={player_id}")
            self.broadcast_room_state(room)
            rejoined = JoinResult(room.code, player_id, room.to_dict())
        if previous is not None and previous[0] == rejoined.room_code:
            # Same room, different player: keep the channel, drop the old seat
            if previous[1] != player_id:
                self._depart(*previous)
        else:
            self._leave_previous(handle, previous)
        return rejoined

    def _leave_current(self, handle: str) -> None:
        self._leave_previous(handle, self.connections.unbind(handle))

    def _leave_previous(self, handle: str, previous) -> None:
        if previous is None:
            return
        code, player_id = previous
        self.broadcaster.leave(handle, code)
        self._depart(code, player_id)

    def disconnect(self, handle: str) -> None:
        ctx = self.connections.unbind(handle)
        if ctx is None:
            return
        code, player_id = ctx
        self.logger.info(f"[disconnect] room={code} player={player_id}")
        self._depart(code, player_id)

    def _depart(self, code: str, player_id: str) -> None:
        self.rate_limiter.forget(player_id)
        with self.registry.locked(code) as room:
            if room is None:
                return
            was_host = room.host_id == player_id
            self.registry.remove_player(code, player_id)
            if self.registry.get_room(code) is not room:
                # Last player gone; the registry already dropped the room
                self.timers.cancel(code)
                return

            if was_host and room.status is GameStatus.LOBBY:
                self.broadcast_room_state(room)
                self.broadcaster.to_room(code, 'error', {'message': 'Host left the room', 'code': 'HOST_LEFT'})
                self._teardown(room)
                return
            if was_host:
                # Keep exactly one host: the earliest remaining joiner takes over
                successor = next(iter(room.players))
                self.registry.transfer_host(code, successor)
                self.logger.info(f"[host-transfer] room={code} host={successor}")
            self.broadcast_room_state(room)
            self.check_game_end(code)

    def _teardown(self, room: Room) -> None:
        self.registry.delete_room(room.code)
        self.timers.cancel(room.code)
        for handle in self.connections.handles_for_room(room.code):
            self.connections.unbind(handle)
        for player_id in room.players:
            self.rate_limiter.forget(player_id)
        self.broadcaster.close(room.code)
        self.logger.info(f"[teardown] room={room.code}")

    # ---- lobby ----

    def select_role(self, handle: str, role) -> bool:
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError('role must be PURSUER or EVADER')
        code, player_id = self._resolve(handle)
        with self.registry.locked(code) as room:
            if room is None:
                raise RoomNotFound()
            self._member(room, player_id)
            # Roles are frozen once the game has started
            if not self.registry.update_role(code, player_id, role):
                return False
            self.logger.info(f"[role] room={code} player={player_id} role={role.value}")
            self.broadcast_room_state(room)
            return True

    def update_area(self, handle: str, area: Area) -> None:
        code, player_id = self._resolve(handle)
        with self.registry.locked(code) as room:
            if room is None:
                raise RoomNotFound()
            self._require_host(room, player_id, 'update area')
            if not self.registry.update_area(code, area):
                raise InvalidState('Area can only be changed in the lobby')
            self.logger.info(f"[area] room={code} radius={area.radius_meters}m")
            self.broadcast_room_state(room)

    def set_duration(self, handle: str, duration_ms: Optional[int]) -> None:
        if duration_ms is not None:
            if isinstance(duration_ms, bool) or not isinstance(duration_ms, (int, float)) or duration_ms <= 0:
                raise ValidationError('durationMs must be a positive number or null')
            duration_ms = int(duration_ms)
        code, player_id = self._resolve(handle)
        with self.registry.locked(code) as room:
            if room is None:
                raise RoomNotFound()
            self._require_host(room, player_id, 'set game duration')
            if not self.registry.set_duration(code, duration_ms):
                raise InvalidState('Duration can only be changed in the lobby')
            self.logger.info(f"[duration] room={code} duration_ms={duration_ms}")
            self.broadcast_room_state(room)

    def start_game(self, handle: str) -> None:
        code, player_id = self._resolve(handle)
        with self.registry.locked(code) as room:
            if room is None:
                raise RoomNotFound()
            self._require_host(room, player_id, 'start game')
            if room.status is not GameStatus.LOBBY:
                raise InvalidState('Game has already started or is finished')
            if not self.registry.start_game(code):
                raise InvalidState('Cannot start game. Ensure all players have roles and area is set.')
            if room.game_duration_ms:
                self.timers.schedule(
                    code,
                    room.game_duration_ms / 1000.0,
                    functools.partial(self.end_game, code, EndReason.TIME_UP),
                )
            self.broadcast_room_state(room)

    # ---- in game ----

    def location_update(self, handle: str, location: Location) -> bool:
        """Apply a location report. False when dropped (not playing, rate-limited)."""
        ctx = self.connections.resolve(handle)
        if ctx is None:
            return False
        code, player_id = ctx
        with self.registry.locked(code) as room:
            if room is None or room.status is not GameStatus.IN_PROGRESS:
                return False
            if player_id not in room.players:
                return False
            if not self.rate_limiter.try_acquire(player_id, self.clock()):
                return False
            player = self.registry.update_location(code, player_id, location)

            if not player.is_captured:
                bonus = find_entered_bonus_area(player, location, room.bonus_areas)
                if bonus is not None:
                    self._trigger_bonus(room, player, bonus.id)

            self.broadcaster.to_room(code, 'locationUpdate', {
                'playerId': player_id,
                'location': location.to_dict(),
                'isOutOfBounds': player.is_out_of_bounds,
            })
            return True

    def _trigger_bonus(self, room: Room, player: Player, bonus_area_id: str) -> None:
        revealed_until = self.clock() + self.settings.bonus_reveal_ms
        self.registry.mark_bonus_reveal(room.code, player.id, revealed_until)
        self.registry.remove_bonus_area(room.code, bonus_area_id)
        self.logger.info(f"[bonus] room={room.code} player={player.id} bonus={bonus_area_id}")
        self.broadcaster.to_room(room.code, 'bonusAreaEntered', {
            'playerId': player.id,
            'playerName': player.name,
            'bonusAreaId': bonus_area_id,
            'revealedUntil': revealed_until,
        })
        self.broadcaster.to_room(room.code, 'bonusAreaRemoved', {'bonusAreaId': bonus_area_id})
        self.broadcast_room_state(room)

    def catch_attempt(self, handle: str, target_id) -> CatchResult:
        if not isinstance(target_id, str) or not target_id:
            raise ValidationError('targetPlayerId is required')
        code, captor_id = self._resolve(handle)
        with self.registry.locked(code) as room:
            if room is None:
                raise RoomNotFound()
            captor = self._member(room, captor_id)
            if room.status is not GameStatus.IN_PROGRESS:
                return CatchResult(CatchOutcome.NOT_IN_PROGRESS)
            target = room.players.get(target_id)
            result = evaluate_catch(captor, target, self.settings.catch_radius_m)
            if not result.captured:
                self.logger.info(f"[catch-miss] room={code} captor={captor_id} outcome={result.outcome.value}")
                return result

            self.registry.capture_player(code, target.id)
            self.logger.info(f"[catch] room={code} captor={captor.id} target={target.id} distance={result.distance:.2f}m")
            self.broadcaster.to_room(code, 'playerCaught', {
                'capturedPlayerId': target.id,
                'capturedPlayerName': target.name,
                'captorPlayerId': captor.id,
                'captorPlayerName': captor.name,
                'distance': result.distance,
                'timestamp': self.clock(),
            })
            self.broadcast_room_state(room)
            self.check_game_end(code)
            return result

    def chat(self, handle: str, message) -> None:
        text = _clean_text(message, 'message', MAX_CHAT_LENGTH)
        code, player_id = self._resolve(handle)
        with self.registry.locked(code) as room:
            if room is None:
                raise RoomNotFound()
            player = self._member(room, player_id)
            self.broadcaster.to_room(code, 'chatMessage', {
                'playerId': player.id,
                'playerName': player.name,
                'message': text,
                'timestamp': self.clock(),
            })

    # ---- game end ----

    def end_game_by_host(self, handle: str) -> None:
        code, player_id = self._resolve(handle)
        with self.registry.locked(code) as room:
            if room is None:
                raise RoomNotFound()
            self._require_host(room, player_id, 'end game')
            if room.status is not GameStatus.IN_PROGRESS:
                raise InvalidState('Game not in progress')
            self.end_game(code, EndReason.HOST_ENDED)

    def check_game_end(self, code: str) -> bool:
        with self.registry.locked(code) as room:
            if room is None or room.status is not GameStatus.IN_PROGRESS:
                return False
            if not room.all_evaders_captured():
                return False
            return self.end_game(code, EndReason.ALL_CAPTURED)

    def end_game(self, code: str, reason: EndReason) -> bool:
        """Single end-of-game path for host, timer and all-captured.

        No-op unless the game is in progress, so racing triggers end it once.
        """
        with self.registry.locked(code) as room:
            if room is None or not self.registry.end_game(code):
                return False
            self.timers.cancel(code)
            summary = build_game_summary(room, reason, room.ended_at)
            self.logger.info(
                f"[game-end] room={code} reason={reason.value} captured={summary['capturedCount']}/{summary['evaderCount']} "
                f"paths={len(summary['movements'])}"
            )
            self.broadcaster.to_room(code, 'gameEnd', summary)
            self.broadcast_room_state(room)
            return True

    # ---- reveal ----

    def run_reveal_tick(self, now: Optional[int] = None) -> List[str]:
        """Reveal evaders in every running room whose deadline has passed.

        Returns the codes of rooms that revealed on this tick.
        """
        now = self.clock() if now is None else now
        revealed = []
        for code in self.registry.codes():
            with self.registry.locked(code) as room:
                if room is None or room.status is not GameStatus.IN_PROGRESS:
                    continue
                deadline = room.reveal_state.next_reveal_at
                if deadline is None or now < deadline:
                    continue
                snapshot = [p.to_dict() for p in room.evaders if not p.is_captured]
                next_reveal_at = now + self.settings.reveal_interval_ms
                self.registry.update_reveal_state(code, True, next_reveal_at, snapshot)
                self.broadcaster.to_room(code, 'revealState', {
                    'isRevealing': True,
                    'nextRevealAt': next_reveal_at,
                    'revealEndsAt': None,
                    'revealedEvaders': snapshot,
                })
                self.logger.info(f"[reveal] room={code} evaders={len(snapshot)}")
                revealed.append(code)
        return revealed
