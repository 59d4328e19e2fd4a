"""
Error taxonomy for room events.

Handlers raise these; ``RoomStateMachine.dispatch`` turns them into
``{"success": False, "error": ..., "code": ...}`` acknowledgements.
"""

from typing import Optional


class RoomError(Exception):
    """Base class for a rejected room request."""

    code = "ROOM_ERROR"
    default_message = "Request rejected"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Malformed or out-of-range requests

class RequestValidationError(RoomError):
    code = "INVALID_REQUEST"
    default_message = "Invalid request"


class InvalidPin(RequestValidationError):
    code = "INVALID_PIN"
    default_message = "PIN must be 4 digits"


class InvalidPayload(RequestValidationError):
    code = "INVALID_PAYLOAD"
    default_message = "Malformed event payload"


class CannotKickSelf(RequestValidationError):
    code = "CANNOT_KICK_SELF"
    default_message = "You cannot kick yourself"


class NameTaken(RequestValidationError):
    code = "NAME_TAKEN"
    default_message = "That name is already taken in this room"


class InvalidBoard(RequestValidationError):
    code = "INVALID_BOARD"
    default_message = "Board layout is not valid"


# Absent rooms, players or tiles

class NotFoundError(RoomError):
    code = "NOT_FOUND"
    default_message = "Not found"


class RoomNotFound(NotFoundError):
    code = "ROOM_NOT_FOUND"
    default_message = "Room not found"


class PlayerNotFound(NotFoundError):
    code = "PLAYER_NOT_FOUND"
    default_message = "Player not found"


class TileNotFound(NotFoundError):
    code = "TILE_NOT_FOUND"
    default_message = "Tile not found"


class NotInRoom(NotFoundError):
    code = "NOT_IN_ROOM"
    default_message = "You are not in a room"


# Host-only actions

class PermissionDeniedError(RoomError):
    code = "PERMISSION_DENIED"
    default_message = "Permission denied"


class NotHost(PermissionDeniedError):
    code = "NOT_HOST"
    default_message = "Only the host can do that"


# Actions invalid for the current game state

class StateConflictError(RoomError):
    code = "STATE_CONFLICT"
    default_message = "Action not allowed right now"


class GameInProgress(StateConflictError):
    code = "GAME_IN_PROGRESS"
    default_message = "Game already in progress"


class GameNotActive(StateConflictError):
    code = "GAME_NOT_ACTIVE"
    default_message = "Game is not in progress"


class RoomFull(StateConflictError):
    code = "ROOM_FULL"
    default_message = "Room is full (max 8 players)"


class PlayersNotReady(StateConflictError):
    code = "PLAYERS_NOT_READY"
    default_message = "Not all players are ready"


class NotEnoughPlayers(StateConflictError):
    code = "NOT_ENOUGH_PLAYERS"
    default_message = "Not enough players to start"


class StillHasTiles(StateConflictError):
    code = "STILL_HAS_TILES"
    default_message = "You still have tiles in your hand!"


class AlreadyInRoom(StateConflictError):
    code = "ALREADY_IN_ROOM"
    default_message = "You are already in a room"


# Bag or pin space cannot satisfy the request

class ResourceExhaustedError(RoomError):
    code = "RESOURCE_EXHAUSTED"
    default_message = "Not enough resources"


class InsufficientBagSupply(ResourceExhaustedError):
    code = "INSUFFICIENT_BAG_SUPPLY"
    default_message = "Not enough tiles in the bag"


class NoPinsAvailable(ResourceExhaustedError):
    code = "NO_PINS_AVAILABLE"
    default_message = "No room codes available, try again later"
