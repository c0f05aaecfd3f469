import asyncio
import datetime
import itertools
import logging
import random
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .board import CHESS_SIZE
from .chess_rules import ChessGame
from .config import Settings
from .errors import MalformedMessageError, RoomNotFoundError, UnknownConnectionError
from .protocol import (
    AssignRoleMessage,
    EmoteMessage,
    EmoteRequest,
    ErrorMessage,
    KickMessage,
    MoveRequest,
    ResetRequest,
    StateMessage,
    parse_inbound,
)
from .tictactoe import TicTacToeGame

log = logging.getLogger(__name__)

# Seats in fill order; everyone past these watches
PLAYER_SEATS = ("PLAYER_1", "PLAYER_2")
OBSERVER = "OBSERVER"

Game = Union[ChessGame, TicTacToeGame]


def create_game(size: int) -> Game:
    if size == CHESS_SIZE:
        return ChessGame()
    return TicTacToeGame(size)


@dataclass
class Session:
    conn_id: str
    room_id: str
    role: str
    color: Optional[str]
    ws: Any

    @property
    def is_player(self) -> bool:
        return self.role in PLAYER_SEATS


class Room:
    def __init__(self, room_id: str, size: int, randomize_colors: bool = False):
        self.room_id = room_id
        self.size = size
        self.created_at = datetime.datetime.now(datetime.timezone.utc)
        self.game: Game = create_game(size)
        colors = list(self.game.colors)
        if randomize_colors:
            random.shuffle(colors)
        self.role_colors: Dict[str, str] = dict(zip(PLAYER_SEATS, colors))
        self.members: Dict[str, Session] = {}  # conn_id -> session, join order
        self.lock = asyncio.Lock()

    def _free_seat(self) -> Optional[str]:
        taken = {s.role for s in self.members.values()}
        for seat in PLAYER_SEATS:
            if seat not in taken:
                return seat
        return None

    def add_member(self, conn_id: str, ws: Any) -> Session:
        role = self._free_seat() or OBSERVER
        session = Session(conn_id, self.room_id, role, self.role_colors.get(role), ws)
        self.members[conn_id] = session
        return session

    def remove_member(self, conn_id: str) -> Optional[Session]:
        return self.members.pop(conn_id, None)

    def role_for_color(self, color: Optional[str]) -> Optional[str]:
        for role, c in self.role_colors.items():
            if c == color:
                return role
        return None

    def reset(self) -> None:
        self.game.reset()
        log.info("Room %s reset", self.room_id)

    def handle(self, session: Session, msg: Union[MoveRequest, ResetRequest]) -> Optional[str]:
        """Apply a MOVE or RESET. Returns an error for the sender, or None when the state changed."""
        if not session.is_player:
            return "Observers cannot change the game"
        if isinstance(msg, ResetRequest):
            self.reset()
            return None
        if isinstance(self.game, ChessGame):
            src, dst = msg.chess_squares()
            result = self.game.apply_move(session.color, src, dst)
        else:
            result = self.game.apply_move(session.color, msg.cell())
        if not result.get("ok"):
            return result.get("error", "Illegal move")
        return None

    def state_message(self) -> StateMessage:
        payload = self.game.serialize_state()
        return StateMessage(
            room_id=self.room_id,
            size=self.size,
            roles=dict(self.role_colors),
            winner_role=self.role_for_color(payload.get("winner")),
            **payload,
        )

    def summary(self) -> Dict[str, Any]:
        players = [s.role for s in self.members.values() if s.is_player]
        return {
            "room_id": self.room_id,
            "size": self.size,
            "game": self.game.kind,
            "created_at": self.created_at.isoformat(),
            "players": players,
            "observers": len(self.members) - len(players),
            "clients": len(self.members),
            "status": self.game.serialize_state()["status"],
        }

    async def send(self, session: Session, message: Any) -> bool:
        try:
            await session.ws.send_text(message.encode())
        except Exception as e:
            log.debug("Room %s: send to %s failed: %s", self.room_id, session.conn_id, e)
            return False
        return True

    async def broadcast(self, message: Any) -> List[str]:
        """Send one message to every member. Returns the ids of connections that failed."""
        dead: List[str] = []
        payload = message.encode()
        for conn_id, session in list(self.members.items()):
            try:
                await session.ws.send_text(payload)
            except Exception as e:
                log.debug("Room %s: broadcast to %s failed: %s", self.room_id, conn_id, e)
                dead.append(conn_id)
        return dead


class RoomManager:
    """Process-wide registry of live rooms and connection sessions.

    A room is created by the first join to an unseen id and deleted as soon as
    its last member leaves.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self._rooms: Dict[str, Room] = {}
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.RLock()
        self._conn_counter = itertools.count()

    def get(self, room_id: str) -> Room:
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFoundError(room_id)
        return room

    def session(self, conn_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(conn_id)
        if session is None:
            raise UnknownConnectionError(conn_id)
        return session

    def list_rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    def snapshot(self) -> List[Dict[str, Any]]:
        return [room.summary() for room in self.list_rooms()]

    def clear(self) -> None:
        with self._lock:
            self._rooms.clear()
            self._sessions.clear()

    def _room_for_join(self, room_id: str, size: int) -> Room:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                log.info("Creating room: %s with size: %s", room_id, size)
                room = Room(room_id, size, randomize_colors=self.settings.randomize_colors)
                self._rooms[room_id] = room
            return room

    def _seat(self, room: Room, ws: Any) -> Optional[Session]:
        """Add ``ws`` to ``room``; None if the room was torn down in the meantime."""
        with self._lock:
            if self._rooms.get(room.room_id) is not room:
                return None
            conn_id = f"{room.room_id}-conn-{next(self._conn_counter)}"
            session = room.add_member(conn_id, ws)
            self._sessions[conn_id] = session
        log.info("Room %s: %s joined as %s", room.room_id, conn_id, session.role)
        return session

    def _unregister(self, conn_id: str) -> Tuple[Optional[Room], Optional[Session]]:
        with self._lock:
            session = self._sessions.pop(conn_id, None)
            if session is None:
                return None, None
            room = self._rooms.get(session.room_id)
            if room is None:
                return None, session
            room.remove_member(conn_id)
            if room.members:
                return room, session
            del self._rooms[session.room_id]
        log.info("Room %s deleted (empty)", session.room_id)
        return None, session

    async def join(self, room_id: str, size: int, ws: Any) -> Session:
        """Register ``ws`` in the room (creating it if needed) and greet it with its role and the board.

        Seating and greeting happen under the room lock, so no broadcast can
        reach the newcomer ahead of its ASSIGN_ROLE.
        """
        while True:
            room = self._room_for_join(room_id, size)
            async with room.lock:
                session = self._seat(room, ws)
                if session is None:
                    continue
                await room.send(session, AssignRoleMessage(role=session.role, color=session.color))
                await room.send(session, room.state_message())
                return session

    async def leave(self, conn_id: str) -> Optional[Session]:
        room, session = self._unregister(conn_id)
        if room is None:
            return session
        log.info("Room %s: %s (%s) left", room.room_id, conn_id, session.role)
        notice = KickMessage(message=f"{session.role} left the room", role=session.role)
        async with room.lock:
            dead = await room.broadcast(notice)
        await self._drop(dead)
        return session

    async def dispatch(self, conn_id: str, text: str) -> None:
        """Process one inbound message from ``conn_id`` to completion."""
        session = self.session(conn_id)
        room = self.get(session.room_id)
        dead: List[str] = []
        try:
            msg = parse_inbound(text, self.settings.emoji_max_length)
            async with room.lock:
                if isinstance(msg, EmoteRequest):
                    dead = await room.broadcast(EmoteMessage(emoji=msg.emoji, sender=session.role, color=session.color))
                else:
                    error = room.handle(session, msg)
                    if error:
                        log.info("Room %s: rejected %s from %s: %s", room.room_id, msg.type, conn_id, error)
                        await room.send(session, ErrorMessage(message=error))
                    else:
                        dead = await room.broadcast(room.state_message())
        except MalformedMessageError as exc:
            log.warning("Room %s: discarding message from %s: %s", room.room_id, conn_id, exc.detail)
            return
        await self._drop(dead)

    async def _drop(self, dead: List[str]) -> None:
        """Deregister members whose socket failed and close what is left of it."""
        for conn_id in dead:
            session = await self.leave(conn_id)
            if session is None:
                continue
            try:
                await session.ws.close()
            except Exception as e:
                log.debug("Room %s: closing %s failed: %s", session.room_id, conn_id, e)
