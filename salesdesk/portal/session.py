"""
Session store: the single source of truth for who is logged in.

The token and the user profile are written together under one session key,
so a reader never observes a token without its user or the other way round.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from portal.roles import Role, parse_role
from services.uploads.staging import release_all

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    id: str
    name: str
    role: Optional[Role] = None
    email: str = ""

    @classmethod
    def from_payload(cls, payload):
        payload = payload or {}
        return cls(
            id=str(payload.get("id") or payload.get("_id") or ""),
            name=payload.get("name") or payload.get("username") or payload.get("email") or "",
            role=parse_role(payload.get("role")),
            email=payload.get("email") or "",
        )

    def as_payload(self):
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role.value if self.role else None,
            "email": self.email,
        }


class PortalSession:
    def __init__(self, django_session, key=None):
        self._session = django_session
        self._key = key or getattr(settings, "PORTAL_SESSION_KEY", "auth-storage")

    def _blob(self):
        return self._session.get(self._key) or {}

    @property
    def token(self):
        return self._blob().get("token")

    @property
    def user(self):
        payload = self._blob().get("user")
        if not payload:
            return None
        return SessionUser.from_payload(payload)

    @property
    def role(self):
        user = self.user
        return user.role if user else None

    def is_logged_in(self):
        return self.token is not None

    def login(self, token, user):
        if not isinstance(user, SessionUser):
            user = SessionUser.from_payload(user)
        self._session.cycle_key()
        self._session[self._key] = {"token": token, "user": user.as_payload()}
        logger.info("Session opened for user %s (%s)", user.id, user.role or "no role")

    def logout(self):
        user = self.user
        release_all(self._session)
        self._session.pop(self._key, None)
        self._session.flush()
        if user:
            logger.info("Session closed for user %s", user.id)
