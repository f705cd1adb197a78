from flask import Blueprint, jsonify
from chase import get_engine

rooms = Blueprint('rooms', __name__)


@rooms.route('', methods=['GET'])
def list_rooms():
    """Summaries of every active room, for monitoring."""
    registry = get_engine().registry
    return jsonify([room.summary() for room in registry.rooms()])


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room_state(room_code):
    registry = get_engine().registry
    with registry.locked(room_code) as room:
        if room is None:
            return jsonify({'error': 'Room not found'}), 404
        return jsonify(room.to_dict())
