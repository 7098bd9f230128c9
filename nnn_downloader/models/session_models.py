"""Models related to the persisted login session."""

from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class StoredCookie(BaseModel):
    """A cookie captured by the browser login.

    ``expires`` is epoch seconds; ``-1`` and ``"never"`` both mean the cookie
    does not expire.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    value: str
    domain: Optional[str] = None
    path: Optional[str] = None
    expires: Optional[Union[float, Literal["never"]]] = None
    http_only: Optional[bool] = Field(default=None, alias="httpOnly")
    secure: Optional[bool] = None
    same_site: Optional[Literal["Strict", "Lax", "None"]] = Field(default=None, alias="sameSite")


class Session(BaseModel):
    """Authentication state shared by every request of a command.

    ``cookie_header`` is only set for sessions converted from the legacy
    raw-header format and is sent verbatim.
    """

    model_config = ConfigDict(populate_by_name=True)

    saved_at: str = Field(alias="savedAt")
    user_agent: Optional[str] = Field(default=None, alias="userAgent")
    cookies: List[StoredCookie] = Field(default_factory=list)
    cookie_header: Optional[str] = Field(default=None, alias="cookieHeader")
