"""Authentication providers that resolve the optional signed-in principal."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

import requests

from closet_app.logging_config import get_logger, log_event
from models.errors import AuthError

LOGGER = get_logger(__name__)
IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts:{action}"

AuthCallback = Callable[[Optional["Principal"]], None]
Unsubscribe = Callable[[], None]

_FRIENDLY_ERRORS = {
    "EMAIL_EXISTS": "An account with this email already exists.",
    "EMAIL_NOT_FOUND": "No account found for this email.",
    "INVALID_PASSWORD": "Incorrect password.",
    "INVALID_LOGIN_CREDENTIALS": "Incorrect email or password.",
    "USER_DISABLED": "This account has been disabled.",
    "WEAK_PASSWORD": "Password should be at least 6 characters.",
}


@dataclass(frozen=True)
class Principal:
    """Signed-in user; only the uid is used for branching and keying."""

    uid: str
    email: Optional[str] = None
    id_token: Optional[str] = None


class AuthProvider(ABC):
    """Push-based auth state, mirroring an ``onAuthStateChanged`` listener."""

    def __init__(self) -> None:
        self._listeners: List[AuthCallback] = []
        self._lock = threading.RLock()

    @property
    @abstractmethod
    def current(self) -> Optional[Principal]:
        """The principal right now, ``None`` for guests."""

    @abstractmethod
    def sign_in(self, email: str, password: str) -> Principal:
        """Sign in with email and password."""

    @abstractmethod
    def sign_up(self, email: str, password: str) -> Principal:
        """Create an account and sign in."""

    @abstractmethod
    def sign_out(self) -> None:
        """Drop the current principal."""

    def subscribe(self, callback: AuthCallback) -> Unsubscribe:
        """Register ``callback`` and deliver the current state to it."""

        with self._lock:
            self._listeners.append(callback)
        callback(self.current)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _notify(self, principal: Optional[Principal]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(principal)


class GuestAuthProvider(AuthProvider):
    """Provider used when no cloud auth is configured; always resolves to guest."""

    @property
    def current(self) -> Optional[Principal]:
        return None

    def sign_in(self, email: str, password: str) -> Principal:
        raise AuthError("Cloud sign-in is not configured.")

    def sign_up(self, email: str, password: str) -> Principal:
        raise AuthError("Cloud sign-in is not configured.")

    def sign_out(self) -> None:
        return None


class IdentityToolkitAuthProvider(AuthProvider):
    """Email/password auth against the Identity Toolkit REST API."""

    def __init__(self, api_key: str, timeout_seconds: float = 10.0, session: requests.Session | None = None) -> None:
        super().__init__()
        if not api_key:
            raise ValueError("api_key is required for Identity Toolkit auth")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self._principal: Optional[Principal] = None

    @property
    def current(self) -> Optional[Principal]:
        return self._principal

    def _call(self, action: str, email: str, password: str) -> Principal:
        url = IDENTITY_TOOLKIT_URL.format(action=action)
        try:
            response = self.session.post(
                url,
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            log_event(LOGGER, logging.WARNING, "auth_request_failed", action=action, error=str(exc))
            raise AuthError("Could not reach the sign-in service. Please try again.") from exc

        if not 200 <= response.status_code < 300:
            try:
                code = response.json().get("error", {}).get("message", "")
            except ValueError:
                code = ""
            code = code.split(" : ")[0]
            log_event(LOGGER, logging.INFO, "auth_rejected", action=action, status_code=response.status_code, code=code)
            raise AuthError(_FRIENDLY_ERRORS.get(code, "Sign-in failed."))

        payload = response.json()
        return Principal(uid=payload["localId"], email=payload.get("email"), id_token=payload.get("idToken"))

    def sign_in(self, email: str, password: str) -> Principal:
        principal = self._call("signInWithPassword", email, password)
        self._set(principal)
        return principal

    def sign_up(self, email: str, password: str) -> Principal:
        principal = self._call("signUp", email, password)
        self._set(principal)
        return principal

    def sign_out(self) -> None:
        if self._principal is not None:
            self._set(None)

    def _set(self, principal: Optional[Principal]) -> None:
        self._principal = principal
        log_event(LOGGER, logging.INFO, "auth_state_changed", signed_in=principal is not None)
        self._notify(principal)


__all__ = [
    "AuthCallback",
    "AuthProvider",
    "GuestAuthProvider",
    "IdentityToolkitAuthProvider",
    "Principal",
]
