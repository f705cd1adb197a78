"""Typed, recoverable command failures.

Raised by the game engine and converted at the Socket.IO boundary into an
acknowledgement or an ``error`` event for the caller only. None of these are
ever broadcast to a room.
"""


class GameError(Exception):
    code = 'GAME_ERROR'
    message = 'Request failed'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class ValidationError(GameError):
    code = 'VALIDATION'
    message = 'Invalid payload'


class NotAuthorized(GameError):
    code = 'NOT_AUTHORIZED'
    message = 'Not authorized'


class NotHost(NotAuthorized):
    code = 'NOT_HOST'
    message = 'Only the host can do that'


class InvalidState(GameError):
    code = 'INVALID_STATE'
    message = 'Not allowed in the current game state'


class NotFound(GameError):
    code = 'NOT_FOUND'
    message = 'Player not found'


class RoomNotFound(NotFound):
    code = 'ROOM_NOT_FOUND'
    message = 'Room not found'


class GameInProgress(InvalidState):
    code = 'GAME_IN_PROGRESS'
    message = 'Game already in progress'
