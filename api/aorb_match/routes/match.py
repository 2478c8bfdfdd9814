from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from ..config import (
    ADMIN_TOKEN,
    DEFAULT_MATCHING_CONFIG,
    MIN_ANSWERED_FOR_MATCHING,
    RECENCY_WINDOW_DAYS,
)
from ..deps import get_store, get_trigger, validate_admin_token
from ..repo import MatchStore
from ..schemas import MatchStatusResponse, RunRoundResponse
from ..services.calibration import compute_score_report
from ..services.trigger import MatchTrigger

router = APIRouter()

FORCED_ROUND_WAIT_SECONDS = 60.0


@router.get("/match/status", response_model=MatchStatusResponse)
def match_status(trigger: MatchTrigger = Depends(get_trigger)) -> MatchStatusResponse:
    info = trigger.state.describe()
    return MatchStatusResponse(
        status=info["status"],
        last_completed_at=info["last_completed_at"],
        last_failed_at=info["last_failed_at"],
        running_since=info["started_at"],
    )


@router.post("/admin/match/run", response_model=RunRoundResponse)
def run_match_round(
    request: Request,
    wait: bool = False,
    x_admin_token: str | None = Header(default=None),
    trigger: MatchTrigger = Depends(get_trigger),
) -> RunRoundResponse:
    validate_admin_token(x_admin_token, ADMIN_TOKEN)
    # A round the middleware just started for this request counts as triggered.
    started_here = getattr(request.state, "round_started", False)
    if not started_here and not trigger.check_and_trigger(force=True):
        raise HTTPException(status_code=409, detail="A matching round is already running")
    summary: dict[str, Any] = {}
    if wait:
        trigger.wait(FORCED_ROUND_WAIT_SECONDS)
        summary = trigger.last_result if isinstance(trigger.last_result, dict) else {}
    status, _ = trigger.current_status()
    return RunRoundResponse(triggered=True, status=status, summary=summary)


@router.get("/admin/match/report")
def match_score_report(
    x_admin_token: str | None = Header(default=None),
    store: MatchStore = Depends(get_store),
) -> dict[str, Any]:
    validate_admin_token(x_admin_token, ADMIN_TOKEN)
    return compute_score_report(
        store,
        now=datetime.now(timezone.utc),
        cfg=DEFAULT_MATCHING_CONFIG,
        recency_window_days=RECENCY_WINDOW_DAYS,
        min_answered=MIN_ANSWERED_FOR_MATCHING,
    )
