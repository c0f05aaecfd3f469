import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .chess_rules import ChessGame
from .config import load_settings, setup_logging
from .errors import RoomNotFoundError, UnknownConnectionError
from .protocol import ErrorMessage
from .rooms import Room, RoomManager

log = logging.getLogger(__name__)

settings = load_settings()
rooms = RoomManager(settings)

app = FastAPI(title="roomplay", version=__version__)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _room_or_404(room_id: str) -> Room:
    try:
        return rooms.get(room_id)
    except RoomNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"room '{room_id}' not found") from exc


@app.get('/healthz')
async def healthz():
    return JSONResponse({'ok': True, 'version': __version__, 'rooms': len(rooms.list_rooms())})


@app.get('/rooms')
async def rooms_list():
    return JSONResponse({'ok': True, 'rooms': rooms.snapshot()})


@app.get('/rooms/{room_id}')
async def room_detail(room_id: str):
    hub = _room_or_404(room_id)
    return JSONResponse({'ok': True, 'room': hub.summary()})


@app.get('/debug/legal')
async def debug_legal(room: str = Query(...), limit: Optional[int] = None):
    """List legal moves for the side to move in a chess room."""
    hub = _room_or_404(room)
    if not isinstance(hub.game, ChessGame):
        raise HTTPException(status_code=400, detail=f"room '{room}' is not a chess room")
    moves = [{'from': src, 'to': dst} for src, dst in hub.game.legal_moves()]
    total = len(moves)
    if limit is not None:
        moves = moves[:max(0, limit)]
    return JSONResponse({'ok': True, 'turn': hub.game.turn, 'count': total, 'moves': moves})


async def _serve(ws: WebSocket, room_id: Optional[str], size_raw: Optional[str]) -> None:
    room_id = room_id or settings.default_room_id
    size = settings.resolve_board_size(size_raw)
    await ws.accept()
    session = await rooms.join(room_id, size, ws)
    try:
        while True:
            txt = await ws.receive_text()
            try:
                await rooms.dispatch(session.conn_id, txt)
            except UnknownConnectionError:
                # Dropped after a failed send
                log.info("Room %s: %s is no longer registered, closing", room_id, session.conn_id)
                break
            except Exception:
                # Never crash the socket loop on handler errors; report to client
                log.exception("Room %s: error processing message from %s", room_id, session.conn_id)
                try:
                    await ws.send_text(ErrorMessage(message="server error").encode())
                except Exception as send_exc:
                    log.debug("Could not report error to %s: %s", session.conn_id, send_exc)
    except WebSocketDisconnect:
        log.debug("Room %s: %s disconnected", room_id, session.conn_id)
    finally:
        await rooms.leave(session.conn_id)


@app.websocket('/play')
async def play_default(ws: WebSocket):
    await _serve(ws, None, None)


@app.websocket('/play/{room_id}')
async def play_room(ws: WebSocket, room_id: str):
    await _serve(ws, room_id, None)


@app.websocket('/play/{room_id}/{size}')
async def play_room_size(ws: WebSocket, room_id: str, size: str):
    await _serve(ws, room_id, size)


def main() -> None:
    import uvicorn

    setup_logging(settings)
    log.info("Game room server is live on port %s", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == '__main__':
    main()
