from fastapi import HTTPException, Request

from .repo import MatchStore
from .services.trigger import MatchTrigger


def validate_admin_token(token: str | None, admin_token: str | None) -> None:
    if not admin_token or not token or token != admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")


def get_trigger(request: Request) -> MatchTrigger:
    return request.app.state.trigger


def get_store(request: Request) -> MatchStore:
    return request.app.state.store
