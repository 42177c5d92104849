import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .config import settings
from .connection import Connection
from .errors import UpgradeError
from .game import QuizSession
from .questions import load_questions
from .schemas import ControlOut, EventPageOut, PublicSessionOut

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # LoadError propagates and aborts startup
    questions = load_questions(settings.QUESTIONS_PATH)
    app.state.quiz = QuizSession(questions, settings)
    logger.info("Serving %d question(s) on ws://%s:%s%s", len(questions), settings.HOST, settings.PORT, settings.WS_PATH)
    yield
    await app.state.quiz.reset()


app = FastAPI(title="QuizRank API", lifespan=lifespan)

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
origin_regex = settings.CORS_ORIGIN_REGEX or None

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_origin_regex=origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_quiz(request: Request) -> QuizSession:
    return request.app.state.quiz


def require_admin(x_admin_key: Optional[str] = Header(default=None)):
    if x_admin_key != settings.ADMIN_KEY:
        raise HTTPException(status_code=401, detail="Invalid admin key")


async def reject_upgrade(websocket: WebSocket) -> None:
    """Answer a failed handshake with HTTP 500, or a 1011 close if the server cannot send one."""
    try:
        await websocket.send_denial_response(PlainTextResponse("WebSocket upgrade failed.", status_code=500))
        return
    except (AttributeError, RuntimeError) as exc:
        logger.debug("Denial response unavailable: %s", exc)
    try:
        await websocket.close(code=1011)
    except RuntimeError:
        pass


@app.websocket(settings.WS_PATH)
async def participant_socket(websocket: WebSocket):
    quiz: QuizSession = websocket.app.state.quiz
    conn = Connection(
        websocket,
        send_timeout=settings.SEND_TIMEOUT_SECONDS,
        outbox_limit=settings.OUTBOX_LIMIT,
    )
    try:
        await conn.accept()
    except UpgradeError as exc:
        logger.error("%s", exc)
        await reject_upgrade(websocket)
        return

    logger.info("New connection %r", conn)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await quiz.handle_message(conn, raw)
    except WebSocketDisconnect:
        pass
    except RuntimeError as exc:
        logger.warning("Connection %r dropped: %s", conn, exc)
    finally:
        await quiz.leave(conn)
        await conn.close()
        logger.info("Connection %r closed", conn)


@app.get(settings.WS_PATH, response_class=PlainTextResponse)
async def participant_socket_plain_http():
    return PlainTextResponse(settings.FORBIDDEN_MESSAGE, status_code=403)


@app.get("/api/session", response_model=PublicSessionOut)
async def get_session(quiz: QuizSession = Depends(get_quiz)):
    return quiz.snapshot()


@app.get("/api/session/events", response_model=EventPageOut)
async def list_events(after: int | None = None, limit: int = 200, quiz: QuizSession = Depends(get_quiz)):
    events = quiz.event_log.list(after=after, limit=limit)
    latest_seq = events[-1]["seq"] if events else after
    return {"events": events, "latest_seq": latest_seq}


@app.get("/api/admin/verify")
async def verify(_: None = Depends(require_admin)):
    return {"ok": True}


@app.post("/api/admin/start", response_model=ControlOut)
async def start(_: None = Depends(require_admin), quiz: QuizSession = Depends(get_quiz)):
    try:
        phase = await quiz.start()
    except ValueError as exc:
        logger.warning("%s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return ControlOut(phase=phase)


@app.post("/api/admin/advance", response_model=ControlOut)
async def advance(_: None = Depends(require_admin), quiz: QuizSession = Depends(get_quiz)):
    try:
        phase = await quiz.advance()
    except ValueError as exc:
        logger.warning("%s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return ControlOut(phase=phase)


# Registered last: every other plain HTTP request gets the same answer as GET on the socket path.
@app.api_route("/{path:path}", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def non_upgrade_request(path: str):
    return PlainTextResponse(settings.FORBIDDEN_MESSAGE, status_code=403)
