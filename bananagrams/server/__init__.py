"""Socket.IO transport for room events."""

from .app import RoomServer, create_server

__all__ = ["RoomServer", "create_server"]
