import logging
import threading
import time
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Request
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .config import (
    DEFAULT_MATCHING_CONFIG,
    DEV_MODE,
    MATCH_ALGO_MODE,
    MATCH_INTERVAL_SECONDS,
    MATCH_RETRY_BACKOFF_SECONDS,
    MIN_ANSWERED_FOR_MATCHING,
    RECENCY_WINDOW_DAYS,
    SHADOW_USER_ID,
    STATUS_HEARTBEAT_SECONDS,
)
from .database import SessionLocal, init_db
from .repo import MatchStore
from .routes import include_modular_routers
from .services.rounds import run_matching_round
from .services.state_machine import MatchState
from .services.trigger import MatchTrigger

logger = logging.getLogger(__name__)


def wait_for_db(max_attempts: int = 20, delay_seconds: float = 1.5) -> None:
    last_err: Exception | None = None
    for _ in range(max_attempts):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
                db.commit()
            return
        except OperationalError as exc:
            last_err = exc
            time.sleep(delay_seconds)
    if last_err:
        raise last_err


def build_trigger(store: MatchStore, state: MatchState | None = None) -> MatchTrigger:
    def _run(now: datetime) -> dict[str, Any]:
        return run_matching_round(
            store,
            now,
            mode=MATCH_ALGO_MODE,
            cfg=DEFAULT_MATCHING_CONFIG,
            recency_window_days=RECENCY_WINDOW_DAYS,
            min_answered=MIN_ANSWERED_FOR_MATCHING,
        )

    return MatchTrigger(
        state or MatchState(),
        _run,
        interval_seconds=MATCH_INTERVAL_SECONDS,
        retry_backoff_seconds=MATCH_RETRY_BACKOFF_SECONDS,
    )


def _heartbeat_loop(trigger: MatchTrigger, stop: threading.Event, every_seconds: float) -> None:
    # Rounds stay on schedule even when no requests arrive.
    while not stop.wait(every_seconds):
        info = trigger.state.describe()
        logger.info(
            "[MATCHING] heartbeat status=%s last_completed_at=%s last_failed_at=%s",
            info["status"],
            info["last_completed_at"],
            info["last_failed_at"],
        )
        trigger.check_and_trigger()


def create_app(store: MatchStore | None = None, trigger: MatchTrigger | None = None) -> FastAPI:
    store = store or MatchStore(shadow_id=SHADOW_USER_ID)
    trigger = trigger or build_trigger(store)

    app = FastAPI(title="A-or-B Match API")
    app.state.store = store
    app.state.trigger = trigger
    app.state.heartbeat_stop = threading.Event()
    include_modular_routers(app)

    @app.middleware("http")
    async def check_matching_round(request: Request, call_next):
        started = request.app.state.trigger.check_and_trigger()
        request.state.round_started = started
        if DEV_MODE:
            logger.debug(
                "[MATCHING][DEV] %s %s round_started=%s",
                request.method,
                request.url.path,
                started,
            )
        return await call_next(request)

    @app.on_event("startup")
    def on_startup() -> None:
        wait_for_db()
        init_db()
        app.state.store.ensure_shadow_user()
        if STATUS_HEARTBEAT_SECONDS > 0:
            threading.Thread(
                target=_heartbeat_loop,
                args=(app.state.trigger, app.state.heartbeat_stop, STATUS_HEARTBEAT_SECONDS),
                name="matching-heartbeat",
                daemon=True,
            ).start()

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        app.state.heartbeat_stop.set()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
