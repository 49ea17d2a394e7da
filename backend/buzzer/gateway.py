from typing import Any, Optional

from flask_socketio import SocketIO

NAMESPACE = '/ws'


def room_for(join_code: str) -> str:
    return f"session:{join_code}"


class SocketIOGateway:
    """The slice of Flask-SocketIO the game services talk to.

    Services never import Flask-SocketIO directly; they get one of these (or a
    stand-in with the same three methods in tests).
    """

    def __init__(self, socketio: SocketIO, namespace: str = NAMESPACE):
        self._socketio = socketio
        self.namespace = namespace

    def join_room(self, sid: str, join_code: str) -> None:
        self._socketio.server.enter_room(sid, room_for(join_code), namespace=self.namespace)

    def emit_to_caller(self, sid: str, event: str, payload: Any) -> None:
        self._socketio.emit(event, payload, to=sid, namespace=self.namespace)

    def broadcast(self, join_code: str, event: str, payload: Any, exclude_sid: Optional[str] = None) -> None:
        self._socketio.emit(
            event,
            payload,
            to=room_for(join_code),
            skip_sid=exclude_sid,
            namespace=self.namespace,
        )
