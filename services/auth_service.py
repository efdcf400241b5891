# services/auth_service.py
import asyncio
import hashlib
import hmac
import logging
import time
from dataclasses import dataclass
from typing import Optional

import bcrypt

from errors import ChatError
from models import User, UserType
from repositories.user_repo import UserRepository

log = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 30 * 24 * 60 * 60

# Compared against when the email is unknown so both paths cost one bcrypt check.
_DUMMY_HASH = bcrypt.hashpw(b"dummy-password", bcrypt.gensalt()).decode("utf-8")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str
    type: UserType

    @classmethod
    def from_model(cls, user: User) -> "SessionUser":
        return cls(id=user.id, email=user.email, type=user.type)


class AuthService:
    """
    Credential checks, guest provisioning and the signed session token
    carried in the session cookie ("<user_id>.<expires>.<signature>").
    """

    def __init__(self, user_repo: UserRepository, secret: str):
        self.user_repo = user_repo
        self._secret = secret.encode("utf-8")

    async def register(self, email: str, password: str) -> SessionUser:
        email = email.strip().lower()
        if await self.user_repo.get_by_email(email):
            raise ChatError("bad_request:api", "An account with this email already exists")
        password_hash = await asyncio.to_thread(hash_password, password)
        user = await self.user_repo.create_user(email, password_hash, UserType.REGULAR)
        log.info("Registered user %s", user.id)
        return SessionUser.from_model(user)

    async def authenticate(self, email: str, password: str) -> Optional[SessionUser]:
        user = await self.user_repo.get_by_email(email.strip().lower())
        stored = user.password if user and user.password else _DUMMY_HASH
        ok = await asyncio.to_thread(verify_password, password, stored)
        if not ok or user is None or not user.password:
            return None
        return SessionUser.from_model(user)

    async def create_guest(self) -> SessionUser:
        email = f"guest-{time.time_ns()}@guest.local"
        user = await self.user_repo.create_user(email, None, UserType.GUEST)
        log.info("Provisioned guest user %s", user.id)
        return SessionUser.from_model(user)

    def _sign(self, payload: str) -> str:
        return hmac.new(self._secret, payload.encode("utf-8"), hashlib.sha256).hexdigest()

    def issue_token(self, user_id: str, ttl_seconds: int = SESSION_TTL_SECONDS) -> str:
        payload = f"{user_id}.{int(time.time()) + ttl_seconds}"
        return f"{payload}.{self._sign(payload)}"

    def read_token(self, token: Optional[str]) -> Optional[str]:
        """Returns the user id of a valid, unexpired token, else None."""
        if not token:
            return None
        try:
            user_id, expires, signature = token.split(".")
            expires_at = int(expires)
        except ValueError:
            return None
        if not hmac.compare_digest(signature, self._sign(f"{user_id}.{expires}")):
            return None
        if expires_at < time.time():
            return None
        return user_id

    async def get_session_user(self, token: Optional[str]) -> Optional[SessionUser]:
        user_id = self.read_token(token)
        if user_id is None:
            return None
        user = await self.user_repo.get_by_id(user_id)
        return SessionUser.from_model(user) if user else None
