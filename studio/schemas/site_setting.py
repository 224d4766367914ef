"""Pydantic schemas for site settings."""
from typing import Literal

from pydantic import BaseModel

AccessMode = Literal["open", "login", "invite"]


class AccessModeResponse(BaseModel):
    access_mode: AccessMode
    signup_enabled: bool


class AccessModeUpdate(BaseModel):
    access_mode: AccessMode
