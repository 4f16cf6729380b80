# app/dependencies.py
import logging
import os
from dataclasses import replace

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from app.services.store import Identity

logger = logging.getLogger(__name__)

SESSION_COOKIE = "sessionId"

# Security schemes
bearer = HTTPBearer(description="Google ID Token (JWT)")
optional_bearer = HTTPBearer(description="Google ID Token (JWT)", auto_error=False)


def _verify_token(token: str) -> str:
    # 1. Check if Client ID is actually loaded
    client_id = os.getenv("GOOGLE_CLIENT_ID")
    if not client_id:
        logger.error("GOOGLE_CLIENT_ID is not set in environment variables")
        raise HTTPException(status_code=500, detail="Server Configuration Error")

    try:
        # 2. Verify the token
        idinfo = id_token.verify_oauth2_token(
            token, google_requests.Request(), client_id
        )
        return idinfo["email"]

    except ValueError as e:
        # 3. Log the specific error (e.g. "Token expired", "Audience mismatch")
        logger.warning("Token validation failed: %s", e)
        raise HTTPException(status_code=401, detail="Not authorized, token failed")
    except GoogleAuthError as e:
        logger.warning("Unexpected auth error: %s", e)
        raise HTTPException(status_code=401, detail="Authentication failed")


def get_verified_email(credentials: HTTPAuthorizationCredentials = Depends(bearer)) -> str:
    return _verify_token(credentials.credentials)


def get_optional_email(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_bearer),
) -> str | None:
    """
    Verified email when a good bearer token is sent, otherwise None.

    Public endpoints never fail on auth: a bad token just means an anonymous claim.
    """
    if credentials is None:
        return None
    try:
        return _verify_token(credentials.credentials)
    except HTTPException as e:
        logger.warning("Ignoring bearer token on public endpoint: %s", e.detail)
        return None


def admin_emails() -> set[str]:
    raw = os.getenv("ADMIN_EMAILS", "")
    return {e.strip().lower() for e in raw.split(",") if e.strip()}


def get_admin_email(email: str = Depends(get_verified_email)) -> str:
    if email.lower() not in admin_emails():
        raise HTTPException(status_code=403, detail="Not authorized as an admin")
    return email


def get_client_ip(request: Request) -> str:
    # First hop of X-Forwarded-For is the original client behind a proxy
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client:
        return request.client.host
    return "unknown"


def get_anonymous_identity(request: Request) -> Identity:
    """IP, session cookie and user agent; never looks at the Authorization header."""
    return Identity(
        ip_address=get_client_ip(request),
        session_id=request.cookies.get(SESSION_COOKIE) or None,
        user_agent=request.headers.get("user-agent"),
    )


def get_identity(
    request: Request,
    user_email: str | None = Depends(get_optional_email),
) -> Identity:
    return replace(get_anonymous_identity(request), user_email=user_email)
