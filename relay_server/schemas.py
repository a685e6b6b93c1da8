"""
HTTP response models.
"""

from typing import Optional

from pydantic import BaseModel


class Health(BaseModel):
    status: str = "online"
    sessions: int = 0


class SessionCreated(BaseModel):
    token: str
    websocket_path: str


class SessionInfo(BaseModel):
    token: str
    events: int
    endpoints: int
    age_seconds: float
    idle_seconds: Optional[float] = None


class RegistryTotals(BaseModel):
    sessions: int
    endpoints: int
    events: int
    eviction: str
