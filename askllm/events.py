from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class Stage(Enum):
    BUILDING_REQUEST = auto()
    DISPATCHING = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass
class Event:
    ts: float
    type: str
    payload: Dict[str, Any]
    level: str = "info"


class EventBus:
    def __init__(self):
        self.events: List[Event] = []

    def emit(self, type_: str, payload: Dict[str, Any], level: str = "info"):
        evt = Event(ts=time.time(), type=type_, payload=payload, level=level)
        self.events.append(evt)
        logger.debug("%s %s", type_, payload)
        return evt

    def enter(self, stage: Stage, **payload):
        return self.emit("stage.enter", {"stage": stage.name, **payload}, level="error" if stage is Stage.FAILED else "info")

    def stages(self) -> List[str]:
        return [e.payload["stage"] for e in self.events if e.type == "stage.enter"]

    @property
    def current(self) -> Optional[str]:
        stages = self.stages()
        return stages[-1] if stages else None
