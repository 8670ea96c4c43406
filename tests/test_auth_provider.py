"""Auth providers: guest resolution and Identity Toolkit sign-in."""

import pytest
import requests

from models.errors import AuthError
from tools.auth_provider import GuestAuthProvider, IdentityToolkitAuthProvider


class _Response:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload


class _Session:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def test_guest_provider_resolves_immediately_to_no_principal() -> None:
    seen = []
    GuestAuthProvider().subscribe(seen.append)
    assert seen == [None]
    with pytest.raises(AuthError):
        GuestAuthProvider().sign_in("a@example.com", "pw")


def test_sign_in_notifies_listeners_with_principal() -> None:
    session = _Session(_Response(200, {"localId": "u1", "email": "a@example.com", "idToken": "tok"}))
    provider = IdentityToolkitAuthProvider("key", session=session)
    seen = []
    provider.subscribe(seen.append)

    principal = provider.sign_in("a@example.com", "secret")

    assert principal.uid == "u1"
    assert seen == [None, principal]
    assert session.calls[0]["url"].endswith("accounts:signInWithPassword")
    assert session.calls[0]["params"] == {"key": "key"}
    assert session.calls[0]["json"]["returnSecureToken"] is True

    provider.sign_out()
    assert seen[-1] is None
    assert provider.current is None


def test_sign_up_uses_sign_up_endpoint() -> None:
    session = _Session(_Response(200, {"localId": "u2"}))
    provider = IdentityToolkitAuthProvider("key", session=session)

    assert provider.sign_up("b@example.com", "secret").uid == "u2"
    assert session.calls[0]["url"].endswith("accounts:signUp")


def test_rejections_become_friendly_messages() -> None:
    session = _Session(_Response(400, {"error": {"message": "WEAK_PASSWORD : Password should be at least 6"}}))
    provider = IdentityToolkitAuthProvider("key", session=session)

    with pytest.raises(AuthError, match="at least 6 characters"):
        provider.sign_up("b@example.com", "123")
    assert provider.current is None


def test_network_errors_become_auth_errors() -> None:
    provider = IdentityToolkitAuthProvider("key", session=_Session(error=requests.ConnectionError("down")))

    with pytest.raises(AuthError, match="try again"):
        provider.sign_in("a@example.com", "secret")


def test_api_key_is_required() -> None:
    with pytest.raises(ValueError):
        IdentityToolkitAuthProvider("")
