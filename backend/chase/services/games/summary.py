from chase.models import EndReason, Room


def build_movements(room: Room):
    """Per-player paths for post-game replay.

    Players who left, never picked a role, or never reported a location
    are skipped.
    """
    movements = []
    for player_id, path in room.movements.items():
        player = room.players.get(player_id)
        if player is None or player.role is None or not path:
            continue
        movements.append({
            'playerId': player_id,
            'playerName': player.name,
            'role': player.role.value,
            'path': [loc.to_dict() for loc in path],
        })
    return movements


def build_game_summary(room: Room, reason: EndReason, now: int):
    evaders = room.evaders
    return {
        'reason': reason.value,
        'pursuerCount': len(room.pursuers),
        'evaderCount': len(evaders),
        'capturedCount': sum(1 for p in evaders if p.is_captured),
        'timestamp': now,
        'movements': build_movements(room),
        'gameDuration': now - room.started_at if room.started_at else 0,
    }
