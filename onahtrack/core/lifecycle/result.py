"""Result payloads for lifecycle transitions and cascades.

Responsibilities:
  - Capture status transitions for logging/audit.
  - Report cascade progress, including per-cycle failures, without raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..domain.enums import CycleStatus
from ..domain.models import Cycle, Examination


@dataclass(frozen=True)
class StatusTransition:
    cycle_id: str
    from_status: CycleStatus
    to_status: CycleStatus
    reason: str


@dataclass(frozen=True)
class CascadeFailure:
    cycle_id: str
    error: str


@dataclass
class CascadeResult:
    voided: bool = False
    cascaded: int = 0
    cascade_failures: list[CascadeFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.cascade_failures)


@dataclass
class StartOutcome:
    cycle: Cycle
    cascaded: int = 0
    cascade_failures: list[CascadeFailure] = field(default_factory=list)


@dataclass
class ExaminationOutcome:
    examination: Examination
    voided: bool
    cascaded: int = 0
    cascade_failures: list[CascadeFailure] = field(default_factory=list)
    transition: Optional[StatusTransition] = None
