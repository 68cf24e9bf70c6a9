import asyncio
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .agent import ConversationEngine, get_engine, get_service
from .settings import get_settings


def setup_server_logging() -> logging.Logger:
    """Configure and return the server logger."""
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("supporttriage.server")
    if logger.handlers:
        return logger

    logger.setLevel(get_settings().log_level)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "server.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger


def _cors_origins_list(origins: str) -> list[str]:
    """Parse CORS_ORIGINS into a list."""
    if not origins or origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


LOGGER = setup_server_logging()
settings = get_settings()

ACTIONS = (
    "sync",
    "submit",
    "start_new_query",
    "confirm_resolved",
    "confirm_not_resolved",
    "rephrase_after_unknown",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report the language model configuration at startup."""
    error = settings.configuration_error
    if error:
        LOGGER.error("Configuration error: %s", error)
    else:
        LOGGER.info("Support triage agent ready (model=%s)", settings.model)

    yield

    LOGGER.info("Shutting down...")


app = FastAPI(
    title="Support Triage Agent",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict[str, Any]:
    """Health check for load balancers and monitoring.

    Returns:
        dict[str, Any]: JSON response with status field.
    """
    return {"status": "ok"}


@app.get("/sessions/{session_id}")
async def session_state(session_id: str) -> dict[str, Any]:
    """Current conversation snapshot for a session (created on first access)."""
    return get_engine(session_id).snapshot().to_dict()


@app.delete("/sessions/{session_id}")
async def end_session(session_id: str) -> dict[str, Any]:
    """Forget a conversation so its engine can be garbage collected.

    Raises:
        HTTPException: 404 when no conversation exists for session_id.
    """
    if not get_service().end_session(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    LOGGER.info("Ended session_id=%s", session_id)
    return {"session_id": session_id, "ended": True}


async def run_action(engine: ConversationEngine, action: str, text: str) -> bool:
    """Invoke a presentation action on the engine. Returns whether it was accepted."""
    if action == "submit":
        return await engine.submit(text)
    if action == "start_new_query":
        return engine.start_new_query()
    if action == "confirm_resolved":
        return engine.confirm_resolved()
    if action == "confirm_not_resolved":
        return engine.confirm_not_resolved()
    if action == "rephrase_after_unknown":
        return engine.rephrase_after_unknown()
    raise ValueError(f"Unknown action: {action}")


async def _forward_frames(websocket: WebSocket, queue: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        frame = await queue.get()
        await websocket.send_json(frame)


@app.websocket("/ws/chat")
async def chat_ws(websocket: WebSocket) -> None:
    """WebSocket chat endpoint: client sends actions, server pushes conversation state.

    Args:
        websocket: WebSocket connection from client.

    Expected Input (JSON):
        {
            "session_id": str - unique session identifier,
            "action": str - one of sync, submit, start_new_query,
                confirm_resolved, confirm_not_resolved, rephrase_after_unknown,
            "text": str - user query text (submit only)
        }

    Response Format:
        Streams JSON objects with fields:
        - {"type": "state", "state": dict} - snapshot after every change
        - {"type": "done", "action": str, "accepted": bool} - action finished
        - {"type": "error", "data": str} - error message if applicable
    """
    await websocket.accept()
    queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
    sender = asyncio.create_task(_forward_frames(websocket, queue))
    engine: ConversationEngine | None = None
    bound_session: str | None = None
    unsubscribe = None

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as e:
                LOGGER.error("Invalid WS payload (not JSON): %s", e)
                queue.put_nowait({"type": "error", "data": "Invalid JSON payload"})
                continue
            if not isinstance(payload, dict):
                queue.put_nowait({"type": "error", "data": "Payload must be a JSON object"})
                continue

            session_id = str(payload.get("session_id") or "default")
            action = str(payload.get("action") or "submit")
            text = str(payload.get("text") or "")

            if action not in ACTIONS:
                queue.put_nowait({"type": "error", "data": f"Unknown action: {action}"})
                continue

            if session_id != bound_session:
                if unsubscribe is not None:
                    unsubscribe()
                engine = get_engine(session_id)
                bound_session = session_id
                unsubscribe = engine.subscribe(
                    lambda view: queue.put_nowait({"type": "state", "state": view.to_dict()})
                )
                LOGGER.info("WS bound session_id=%s", session_id)

            if action == "sync":
                queue.put_nowait({"type": "state", "state": engine.snapshot().to_dict()})
                accepted = True
            else:
                accepted = await run_action(engine, action, text)
                LOGGER.info(
                    "WS action=%s session_id=%s accepted=%s mode=%s",
                    action,
                    session_id,
                    accepted,
                    engine.mode.value,
                )
            queue.put_nowait({"type": "done", "action": action, "accepted": accepted})

    except WebSocketDisconnect:
        LOGGER.info("WS disconnect")
    except (ConnectionError, TimeoutError, RuntimeError) as e:
        LOGGER.exception("Unexpected WS error: %s", e)
        try:
            await websocket.close()
        except (OSError, RuntimeError):
            pass
    finally:
        if unsubscribe is not None:
            unsubscribe()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except (OSError, RuntimeError, WebSocketDisconnect) as e:
            LOGGER.debug("WS sender stopped: %s", e)
