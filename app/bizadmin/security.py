import hmac
import secrets

from flask import Request, session

CSRF_SESSION_KEY = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"


def ensure_csrf_token() -> str:
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = session[CSRF_SESSION_KEY] = secrets.token_urlsafe(32)
    return token


def validate_csrf(req: Request) -> bool:
    """Panel and portal forms post the token as a hidden field; scripts may send the header."""
    expected = session.get(CSRF_SESSION_KEY)
    sent = req.headers.get(CSRF_HEADER) or req.form.get(CSRF_SESSION_KEY)
    if not expected or not sent:
        return False
    return hmac.compare_digest(str(sent), str(expected))
