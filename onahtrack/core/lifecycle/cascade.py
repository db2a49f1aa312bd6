"""Sequential recalculation cascade over a subject's chain.

Responsibilities:
  - Visit every cycle after an anchor instant in ascending onah order.
  - Run the supplied per-cycle recompute step and collect failures.

Invariants:
  - Strictly sequential: cycle k+1 is visited only after cycle k's step
    finished, so each step sees its predecessor's settled values.
  - A failing step is recorded and the cascade continues.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable

from ..domain.models import Cycle
from .chain import CycleChain
from .result import CascadeFailure, CascadeResult

logger = logging.getLogger(__name__)

RecomputeStep = Callable[[Cycle], None]


def run_cascade(
    chain: CycleChain,
    anchor: datetime,
    step: RecomputeStep,
    exclude_ids: Iterable[str] = (),
) -> CascadeResult:
    result = CascadeResult()
    targets = chain.after(anchor, exclude_ids=exclude_ids)
    for cycle in targets:
        try:
            step(cycle)
        except Exception as exc:
            logger.exception(
                "cascade step failed",
                extra={"subject_id": chain.subject_id, "cycle_id": cycle.id},
            )
            result.cascade_failures.append(CascadeFailure(cycle_id=cycle.id, error=f"{type(exc).__name__}: {exc}"))
            continue
        result.cascaded += 1
    logger.info(
        "cascade_completed",
        extra={
            "subject_id": chain.subject_id,
            "anchor": anchor.isoformat(),
            "cascaded": result.cascaded,
            "failed": result.failed,
        },
    )
    return result
