from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from fastapi import FastAPI, Header, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.middleware.cors import CORSMiddleware

from gridle.api.models import (
    AttemptSnapshot,
    ChallengeResponse,
    CountdownResponse,
    HeadingRequest,
    HeadingResponse,
    HistoryEntry,
    ShareResponse,
    StartAttemptRequest,
    StartAttemptResponse,
    StreakResponse,
)
from gridle.common.config import settings
from gridle.common.dates import next_utc_midnight, utc_now
from gridle.common.errors import InvalidDateFormat
from gridle.common.types import AttemptStatus
from gridle.engine.challenge import ChallengeConfig
from gridle.engine.engine import SimulationEngine
from gridle.engine.manager import AttemptManager
from gridle.engine.share import countdown_share_text, format_countdown
from gridle.persist.sqlite import SqlitePersistence

app = FastAPI(title="Gridle")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)

persistence: SqlitePersistence | None = None
manager: AttemptManager | None = None

engine_lock = asyncio.Lock()
tick_tasks: Dict[str, asyncio.Task] = {}

# Snapshot listeners per attempt; each socket gets a latest-only queue.
attempt_listeners: Dict[str, set[asyncio.Queue[Dict[str, object]]]] = {}
attempt_listeners_lock = asyncio.Lock()


def _get_manager() -> AttemptManager:
    assert manager is not None
    return manager


def _check_api_key(provided: str | None) -> None:
    if settings.api_key and provided != settings.api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def _get_attempt(attempt_id: str) -> SimulationEngine:
    attempt = _get_manager().get(attempt_id)
    if attempt is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown attempt")
    return attempt


@app.on_event("startup")
async def _startup() -> None:
    global persistence, manager
    logging.basicConfig(level=settings.log_level.upper())
    persistence = SqlitePersistence(settings.db_path, history_max_rows=settings.history_max_rows)
    manager = AttemptManager(
        persistence,
        max_attempts=settings.max_attempts,
        retain_finished=settings.retain_finished,
    )
    if not settings.enable_tick_loop:
        logger.warning("Tick loop disabled via GRIDLE_ENABLE_TICK_LOOP")


@app.on_event("shutdown")
async def _shutdown() -> None:
    for task in list(tick_tasks.values()):
        task.cancel()
    tick_tasks.clear()
    if persistence is not None:
        persistence.close()


async def attempt_loop(attempt_id: str) -> None:
    """Drive one attempt at its challenge's tick rate until it finishes."""
    game = _get_manager()
    try:
        while True:
            async with engine_lock:
                attempt = game.get(attempt_id)
                if attempt is None:
                    break
                interval = 1.0 / attempt.config.ticks_per_second
                was_running = attempt.status == AttemptStatus.RUNNING
                if was_running:
                    game.tick(attempt_id)
                state = attempt.snapshot()
                finished = attempt.status.finished
            if was_running or finished:
                await _publish(attempt_id, state)
            if finished:
                break
            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception("Tick loop failed for attempt %s", attempt_id)
    finally:
        tick_tasks.pop(attempt_id, None)


async def _publish(attempt_id: str, state: Dict[str, object]) -> None:
    async with attempt_listeners_lock:
        queues = list(attempt_listeners.get(attempt_id, set()))
    for queue in queues:
        _queue_latest(queue, state)


def _queue_latest(queue: asyncio.Queue[Dict[str, object]], state: Dict[str, object]) -> None:
    try:
        queue.put_nowait(state)
    except asyncio.QueueFull:
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            pass
        try:
            queue.put_nowait(state)
        except asyncio.QueueFull:
            pass


async def _load_challenge(date: str | None) -> ChallengeConfig:
    # Cache writes wait on the SQLite writer thread; keep them off the event loop.
    try:
        return await asyncio.to_thread(_get_manager().challenge, date)
    except InvalidDateFormat as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@app.get("/challenge/today", response_model=ChallengeResponse)
async def challenge_today(x_api_key: str | None = Header(default=None)) -> ChallengeResponse:
    _check_api_key(x_api_key)
    config = await _load_challenge(None)
    return ChallengeResponse(**config.to_dict())


@app.get("/challenge/{date}", response_model=ChallengeResponse)
async def challenge_for_date(
    date: str, x_api_key: str | None = Header(default=None)
) -> ChallengeResponse:
    _check_api_key(x_api_key)
    config = await _load_challenge(date)
    return ChallengeResponse(**config.to_dict())


@app.post("/attempts", response_model=StartAttemptResponse)
async def start_attempt(
    req: StartAttemptRequest | None = None, x_api_key: str | None = Header(default=None)
) -> StartAttemptResponse:
    _check_api_key(x_api_key)
    config = await _load_challenge(req.date if req else None)
    async with engine_lock:
        attempt = _get_manager().launch(config)
    if attempt is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Server full")
    if settings.enable_tick_loop:
        tick_tasks[attempt.attempt_id] = asyncio.create_task(attempt_loop(attempt.attempt_id))
    return StartAttemptResponse(
        attempt_id=attempt.attempt_id,
        challenge=ChallengeResponse(**attempt.config.to_dict()),
    )


@app.get("/attempts/{attempt_id}", response_model=AttemptSnapshot)
async def attempt_state(
    attempt_id: str, x_api_key: str | None = Header(default=None)
) -> AttemptSnapshot:
    _check_api_key(x_api_key)
    async with engine_lock:
        data = _get_attempt(attempt_id).snapshot()
    return AttemptSnapshot(**data)


@app.post("/attempts/{attempt_id}/heading", response_model=HeadingResponse)
async def attempt_heading(
    attempt_id: str, req: HeadingRequest, x_api_key: str | None = Header(default=None)
) -> HeadingResponse:
    _check_api_key(x_api_key)
    async with engine_lock:
        attempt = _get_attempt(attempt_id)
        accepted = attempt.set_heading(req.direction)
        heading = attempt.player.heading
    return HeadingResponse(accepted=accepted, heading=heading)


@app.post("/attempts/{attempt_id}/tick", response_model=AttemptSnapshot)
async def attempt_tick(
    attempt_id: str, x_api_key: str | None = Header(default=None)
) -> AttemptSnapshot:
    """Advance one tick by hand; meant for clients that own the cadence."""
    _check_api_key(x_api_key)
    async with engine_lock:
        attempt = _get_attempt(attempt_id)
        _get_manager().tick(attempt_id)
        data = attempt.snapshot()
    await _publish(attempt_id, data)
    return AttemptSnapshot(**data)


@app.post("/attempts/{attempt_id}/pause", response_model=AttemptSnapshot)
async def attempt_pause(
    attempt_id: str, x_api_key: str | None = Header(default=None)
) -> AttemptSnapshot:
    _check_api_key(x_api_key)
    async with engine_lock:
        attempt = _get_attempt(attempt_id)
        if not _get_manager().pause(attempt_id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Attempt not running")
        data = attempt.snapshot()
    return AttemptSnapshot(**data)


@app.post("/attempts/{attempt_id}/resume", response_model=AttemptSnapshot)
async def attempt_resume(
    attempt_id: str, x_api_key: str | None = Header(default=None)
) -> AttemptSnapshot:
    _check_api_key(x_api_key)
    async with engine_lock:
        attempt = _get_attempt(attempt_id)
        if not _get_manager().resume(attempt_id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Attempt not paused")
        data = attempt.snapshot()
    return AttemptSnapshot(**data)


@app.post("/attempts/{attempt_id}/abandon", response_model=AttemptSnapshot)
async def attempt_abandon(
    attempt_id: str, x_api_key: str | None = Header(default=None)
) -> AttemptSnapshot:
    _check_api_key(x_api_key)
    async with engine_lock:
        attempt = _get_attempt(attempt_id)
        if not _get_manager().abandon(attempt_id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Attempt finished")
        data = attempt.snapshot()
    await _publish(attempt_id, data)
    return AttemptSnapshot(**data)


@app.get("/attempts/{attempt_id}/share", response_model=ShareResponse)
async def attempt_share(
    attempt_id: str, x_api_key: str | None = Header(default=None)
) -> ShareResponse:
    _check_api_key(x_api_key)
    async with engine_lock:
        _get_attempt(attempt_id)
        text = _get_manager().share(attempt_id)
    return ShareResponse(text=text or "")


@app.get("/streak", response_model=StreakResponse)
async def streak(x_api_key: str | None = Header(default=None)) -> StreakResponse:
    _check_api_key(x_api_key)
    record = _get_manager().streaks.current()
    return StreakResponse(
        streak=record.streak,
        last_win_date=record.last_win_date,
        last_win_ms=record.last_win_ms,
    )


@app.get("/countdown", response_model=CountdownResponse)
async def countdown() -> CountdownResponse:
    now = utc_now()
    return CountdownResponse(
        next_challenge_at=next_utc_midnight(now).isoformat(),
        remaining=format_countdown(now),
        share_text=countdown_share_text(now),
    )


@app.get("/history", response_model=List[HistoryEntry])
async def history(x_api_key: str | None = Header(default=None)) -> List[HistoryEntry]:
    _check_api_key(x_api_key)
    assert persistence is not None
    await asyncio.to_thread(persistence.flush)
    return [HistoryEntry(**row) for row in persistence.list_attempts(settings.history_limit)]


@app.websocket("/attempts/{attempt_id}/ws")
async def attempt_ws(ws: WebSocket, attempt_id: str, key: str | None = None) -> None:
    _check_api_key(key)
    async with engine_lock:
        attempt = _get_manager().get(attempt_id)
        initial = attempt.snapshot() if attempt else None
    if initial is None:
        await ws.close(code=4404)
        return
    await ws.accept()
    queue: asyncio.Queue[Dict[str, object]] = asyncio.Queue(maxsize=1)
    async with attempt_listeners_lock:
        attempt_listeners.setdefault(attempt_id, set()).add(queue)
    try:
        await ws.send_json(initial)
        while True:
            state = await queue.get()
            try:
                await asyncio.wait_for(ws.send_json(state), timeout=settings.ws_send_timeout)
            except WebSocketDisconnect:
                break
            except Exception:
                logger.exception("Attempt websocket send failed")
                break
            if state.get("status") in {s.value for s in AttemptStatus if s.finished}:
                break
    finally:
        async with attempt_listeners_lock:
            queues = attempt_listeners.get(attempt_id)
            if queues:
                queues.discard(queue)
                if not queues:
                    attempt_listeners.pop(attempt_id, None)
