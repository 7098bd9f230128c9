"""Persistence for the browser login session and cookie header computation."""

from __future__ import annotations

import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from ..models import Session, StoredCookie

LEGACY_COOKIE_DOMAIN = ".nnn.ed.nico"


class SessionParseError(ValueError):
    """Raised when a session file is not valid JSON or has an unknown shape."""


class MissingSessionError(RuntimeError):
    """Raised when a command needs credentials but no session was saved."""


class _LegacySession(BaseModel):
    cookies: str
    created_at: Optional[str] = Field(default=None, validation_alias=AliasChoices("createdAt", "created_at"))


def parse_cookie_header(cookie_header: str) -> List[StoredCookie]:
    """Splits a raw ``Cookie`` header into cookies scoped to the legacy domain."""

    cookies: List[StoredCookie] = []
    for pair in cookie_header.split(";"):
        pair = pair.strip()
        if not pair:
            continue
        name, _, value = pair.partition("=")
        name = name.strip()
        if not name:
            continue
        cookies.append(StoredCookie(name=name, value=value.strip(), domain=LEGACY_COOKIE_DOMAIN, path="/"))
    return cookies


def parse_session(payload: object) -> Session:
    """Accepts the current or the legacy persisted shape."""

    if isinstance(payload, dict) and "savedAt" in payload:
        try:
            return Session.model_validate(payload)
        except ValidationError as exc:
            raise SessionParseError(f"Invalid session: {exc}") from exc

    try:
        legacy = _LegacySession.model_validate(payload)
    except ValidationError as exc:
        raise SessionParseError(f"Unrecognized session format: {exc}") from exc

    saved_at = legacy.created_at or datetime.now(timezone.utc).isoformat()
    return Session(
        saved_at=saved_at,
        cookies=parse_cookie_header(legacy.cookies),
        cookie_header=legacy.cookies,
    )


class SessionStore:
    """Loads and saves the session JSON file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> Optional[Session]:
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as handle:
            raw = handle.read()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SessionParseError(f"Session file {self.path} is not valid JSON: {exc}") from exc
        session = parse_session(payload)
        logging.debug("Loaded session from %s (%s cookies)", self.path, len(session.cookies))
        return session

    def require(self) -> Session:
        session = self.load()
        if session is None:
            raise MissingSessionError(f"No session found at {self.path}. Log in first to create one.")
        return session

    def save(self, session: Session) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as handle:
            handle.write(session.model_dump_json(by_alias=True, exclude_none=True, indent=2))
        logging.debug("Saved session to %s", self.path)


def _domain_matches(cookie_domain: str, host: str) -> bool:
    domain = cookie_domain[1:] if cookie_domain.startswith(".") else cookie_domain
    return host == domain or host.endswith(f".{domain}")


def _path_matches(cookie_path: str, request_path: str) -> bool:
    if not request_path.startswith("/") or not cookie_path.startswith("/"):
        return False
    if cookie_path == "/":
        return True
    return request_path.startswith(cookie_path)


def _is_live(cookie: StoredCookie, now: float) -> bool:
    if cookie.expires is None or cookie.expires == "never" or cookie.expires == -1:
        return True
    return cookie.expires > now


def build_cookie_header(session: Session, url: str, now: Optional[float] = None) -> str:
    """Returns the ``Cookie`` header value the session would send to ``url``.

    Legacy sessions return their captured header verbatim. Otherwise cookies
    are filtered by domain, path and expiry and de-duplicated by name, the
    last matching cookie winning.
    """

    if session.cookie_header and session.cookie_header.strip():
        return session.cookie_header

    parsed = urlparse(url)
    host = parsed.hostname or ""
    request_path = parsed.path or "/"
    current = time.time() if now is None else now

    by_name = {}
    for cookie in session.cookies:
        if not _is_live(cookie, current):
            continue
        if not _domain_matches(cookie.domain or host, host):
            continue
        if not _path_matches(cookie.path or "/", request_path):
            continue
        by_name[cookie.name] = cookie.value

    return "; ".join(f"{name}={value}" for name, value in by_name.items())
