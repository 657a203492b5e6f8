"""Event feed schemas."""

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel


class EventRecord(BaseModel):
    seq: int
    event: str
    payload: Dict[str, Any]
    emitted_at: datetime


class EventFeed(BaseModel):
    """Events after the requested sequence number, oldest first."""

    items: List[EventRecord]
    last_seq: int
