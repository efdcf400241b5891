# endpoints/utils.py
import uuid
from typing import Optional

from dependency_injector.wiring import inject, Provide
from fastapi import Depends, Request, Response

from containers import Container
from errors import ChatError
from services.auth_service import SESSION_TTL_SECONDS, AuthService, SessionUser

COOKIE_NAME = "chat_session"


@inject
async def get_current_user(
        request: Request,
        auth_service: AuthService = Depends(Provide[Container.auth_service]),
) -> Optional[SessionUser]:
    """
    Session user from the signed 'chat_session' cookie, or None.
    """
    return await auth_service.get_session_user(request.cookies.get(COOKIE_NAME))


def require_user(user: Optional[SessionUser], surface: str = "chat") -> SessionUser:
    if user is None:
        raise ChatError(f"unauthorized:{surface}")
    return user


def set_session_cookie(response: Response, token: str, secure: bool = False) -> None:
    response.set_cookie(
        COOKIE_NAME,
        token,
        max_age=SESSION_TTL_SECONDS,
        httponly=True,
        samesite="lax",
        secure=secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(COOKIE_NAME)


def get_correlation_id(request: Request) -> str:
    return request.headers.get("x-request-id") or request.headers.get("x-vercel-id") or uuid.uuid4().hex
