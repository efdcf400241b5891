# endpoints/api_auth.py
from typing import Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, RedirectResponse

from config import Settings
from containers import Container
from dtos import CredentialsDTO, UserDTO
from errors import ChatError
from services.auth_service import AuthService, SessionUser
from .utils import clear_session_cookie, get_current_user, set_session_cookie

router = APIRouter(prefix="/api/auth")


def _user_dto(user: SessionUser) -> UserDTO:
    return UserDTO(id=user.id, email=user.email, type=user.type.value)


def _safe_redirect(url: Optional[str]) -> str:
    # local paths only
    if not url or not url.startswith("/") or url.startswith("//"):
        return "/"
    return url


@router.get("/guest")
@inject
async def guest_sign_in(
        redirectUrl: Optional[str] = Query(None),
        user: Optional[SessionUser] = Depends(get_current_user),
        settings: Settings = Depends(Provide[Container.settings]),
        auth_service: AuthService = Depends(Provide[Container.auth_service]),
):
    if user is not None:
        return RedirectResponse("/", status_code=302)
    if not settings.flags.guest_accounts:
        raise ChatError("forbidden:auth", "Guest accounts are disabled.")
    guest = await auth_service.create_guest()
    response = RedirectResponse(_safe_redirect(redirectUrl), status_code=302)
    set_session_cookie(response, auth_service.issue_token(guest.id), secure=settings.production)
    return response


@router.post("/register")
@inject
async def register(
        payload: CredentialsDTO,
        settings: Settings = Depends(Provide[Container.settings]),
        auth_service: AuthService = Depends(Provide[Container.auth_service]),
):
    user = await auth_service.register(payload.email, payload.password)
    response = JSONResponse(_user_dto(user).model_dump(by_alias=True))
    set_session_cookie(response, auth_service.issue_token(user.id), secure=settings.production)
    return response


@router.post("/login")
@inject
async def login(
        payload: CredentialsDTO,
        settings: Settings = Depends(Provide[Container.settings]),
        auth_service: AuthService = Depends(Provide[Container.auth_service]),
):
    user = await auth_service.authenticate(payload.email, payload.password)
    if user is None:
        raise ChatError("unauthorized:auth", "Invalid email or password")
    response = JSONResponse(_user_dto(user).model_dump(by_alias=True))
    set_session_cookie(response, auth_service.issue_token(user.id), secure=settings.production)
    return response


@router.post("/logout")
async def logout():
    response = JSONResponse({"success": True})
    clear_session_cookie(response)
    return response


@router.get("/session")
async def get_session(user: Optional[SessionUser] = Depends(get_current_user)):
    return {"user": _user_dto(user).model_dump(by_alias=True) if user else None}
