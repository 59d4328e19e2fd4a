from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import socketio
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..config import ServerConfig
from ..game.models import BoardTile, Effect, Emit, EnterRoom, LeaveRoom
from ..game.room import EVENTS, RoomStateMachine
from ..verifiers import BoardValidation, WordValidator, validate_board

logger = logging.getLogger(__name__)


class BoardCheck(BaseModel):
    tiles: List[BoardTile] = []
    grid_size: Optional[int] = Field(default=None, ge=2)


class RoomServer:
    """
    Socket.IO adapter around a RoomStateMachine.

    Each client event is dispatched to the state machine and the resulting
    effects are delivered in order while holding the room's lock, so every
    room sees its broadcasts in the order its state changed.
    """

    def __init__(
        self,
        config: ServerConfig,
        machine: Optional[RoomStateMachine] = None,
        validator: Optional[WordValidator] = None,
    ):
        self.config = config
        self.machine = machine or RoomStateMachine(settings=config.game)
        if validator is None:
            validator = (
                WordValidator.from_path(config.dictionary_path)
                if config.dictionary_path else WordValidator()
            )
        self.validator = validator
        self._locks: Dict[str, asyncio.Lock] = {}
        self._create_lock = asyncio.Lock()

        # Socket.IO server (ASGI)
        self.sio = socketio.AsyncServer(
            async_mode='asgi', cors_allowed_origins=config.cors_allowed_origins,
        )
        origins = config.cors_allowed_origins
        self.app = FastAPI(title="Banana Rooms", version=__version__, lifespan=self._lifespan)
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=[origins] if isinstance(origins, str) else list(origins),
            allow_credentials=True,
            allow_methods=['*'],
            allow_headers=['*'],
        )
        # Mount Socket.IO next to the REST app
        self.asgi_app = socketio.ASGIApp(self.sio, other_asgi_app=self.app)

        self._register_events()
        self._register_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        task = asyncio.create_task(self.validator.initialize())
        yield
        if not task.done():
            task.cancel()

    # Socket.IO events

    def _register_events(self) -> None:
        self.sio.on('connect', handler=self.on_connect)
        self.sio.on('disconnect', handler=self.on_disconnect)
        for event in EVENTS:
            if event == 'disconnect':
                continue
            self.sio.on(event, handler=self._event_handler(event))

    def _event_handler(self, event: str):
        async def handler(sid, *args):
            return await self.handle(sid, event, *args)
        handler.__name__ = f"on_{event}"
        return handler

    async def on_connect(self, sid, environ, auth=None):
        logger.info("Client connected: %s", sid)

    async def on_disconnect(self, sid, *args):
        logger.info("Client disconnected: %s", sid)
        await self.handle(sid, 'disconnect')

    def _lock_for(self, key: Optional[str]) -> asyncio.Lock:
        if key is None:
            return self._create_lock
        return self._locks.setdefault(key, asyncio.Lock())

    async def handle(self, sid: str, event: str, *args: Any) -> Optional[Dict[str, Any]]:
        """Dispatch one event and deliver its effects; returns the ack."""
        key = self.machine.room_key(sid, event, args)
        async with self._lock_for(key):
            outcome = self.machine.dispatch(sid, event, args)
            await self.deliver(outcome.effects)
        if key is not None and key not in self.machine.store:
            self._locks.pop(key, None)
        return outcome.ack

    async def deliver(self, effects: List[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, EnterRoom):
                await self.sio.enter_room(effect.sid, effect.room)
            elif isinstance(effect, LeaveRoom):
                await self.sio.leave_room(effect.sid, effect.room)
            elif isinstance(effect, Emit):
                await self.sio.emit(
                    effect.event,
                    effect.payload,
                    to=effect.to or effect.room,
                    skip_sid=effect.skip_sid,
                )

    # REST endpoints
    # The word list loads in the background from the lifespan hook; the
    # dictionary routes report its status rather than wait for it.

    def _register_routes(self) -> None:
        app = self.app

        @app.get('/health')
        async def health() -> Dict[str, Any]:
            return {
                'ok': True,
                'rooms': len(self.machine.store),
                'dictionary': self.validator.status.value,
            }

        @app.get('/dict/validate')
        async def validate_word(word: str):
            if not self.validator.is_ready:
                return {'word': word.upper(), 'valid': None, 'status': self.validator.status.value}
            return {
                'word': word.upper(),
                'valid': self.validator.is_valid_word(word),
                'status': self.validator.status.value,
            }

        @app.get('/dict/suggest')
        async def suggest(prefix: str, limit: int = Query(default=10, ge=1, le=100)):
            if not self.validator.is_ready:
                return {'prefix': prefix.upper(), 'words': [], 'status': self.validator.status.value}
            return {
                'prefix': prefix.upper(),
                'words': self.validator.words_starting_with(prefix, limit),
                'status': self.validator.status.value,
            }

        @app.post('/board/validate', response_model=BoardValidation)
        async def check_board(body: BoardCheck) -> BoardValidation:
            grid_size = body.grid_size or self.config.game.grid_size
            try:
                return validate_board(body.tiles, self.validator, grid_size)
            except ValueError as exc:
                raise HTTPException(status_code=422, detail=str(exc))


def create_server(
    config: Optional[ServerConfig] = None,
    machine: Optional[RoomStateMachine] = None,
    validator: Optional[WordValidator] = None,
) -> RoomServer:
    """Build the Socket.IO + FastAPI server for ``config`` (defaults if None)."""
    return RoomServer(config or ServerConfig(), machine=machine, validator=validator)
