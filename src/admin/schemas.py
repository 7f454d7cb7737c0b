from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from world.reminder import ReminderSweep


@dataclass
class RuntimeControl:
    shutdown_event: asyncio.Event
    sweep: "ReminderSweep"
    started_at: float


class ShutdownRequest(BaseModel):
    reason: str = Field(default="manual")


class BadgeResponse(BaseModel):
    date: str
    count: int


class OccurrenceItem(BaseModel):
    instance_id: str
    original_id: str
    date: str
    end_date: str | None = None
    time: str | None = None
    end_time: str | None = None
    title: str
    note: str = ""
    priority: str = "none"
    completed: bool
    notified: bool
