"""Allowed cycle status transitions.

Responsibilities:
  - Define legal next statuses per current status.
  - Transition functions in core.lifecycle.transitions must respect this graph.

Invariants:
  - COMPLETED is terminal.
  - PHASE2 -> PHASE1 exists only for voiding.
"""

from __future__ import annotations

from .enums import CycleStatus

ALLOWED_TRANSITIONS: dict[CycleStatus, set[CycleStatus]] = {
    CycleStatus.PHASE1: {CycleStatus.PHASE1, CycleStatus.PHASE2},
    CycleStatus.PHASE2: {CycleStatus.PHASE1, CycleStatus.COMPLETED},
    CycleStatus.COMPLETED: set(),
}
