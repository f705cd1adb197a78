"""Room-scoped multicast and room membership over Socket.IO."""


class SocketIOBroadcaster:
    def __init__(self, socketio, namespace='/'):
        self.socketio = socketio
        self.namespace = namespace

    def to_room(self, room_code: str, event: str, payload) -> None:
        # Safe outside a request context (timers, reveal loop)
        self.socketio.emit(event, payload, to=room_code, namespace=self.namespace)

    def enter(self, handle: str, room_code: str) -> None:
        self.socketio.server.enter_room(handle, room_code, namespace=self.namespace)

    def leave(self, handle: str, room_code: str) -> None:
        self.socketio.server.leave_room(handle, room_code, namespace=self.namespace)

    def close(self, room_code: str) -> None:
        self.socketio.close_room(room_code, namespace=self.namespace)
