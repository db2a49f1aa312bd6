from __future__ import annotations

from datetime import datetime, timezone

import pytest

from onahtrack.core.domain.models import Cycle
from onahtrack.core.lifecycle.metrics import civil_days_between, measured_interval, summarize
from onahtrack.tests.support import JERUSALEM, SUBJECT, local


def test_civil_days_use_local_dates() -> None:
    # 23:30 UTC on Jan 1 is already Jan 2 in Jerusalem.
    earlier = datetime(2025, 1, 1, 23, 30, tzinfo=timezone.utc)
    later = local(2025, 1, 3, 6)

    assert civil_days_between(earlier, later, JERUSALEM) == 1


def test_measured_interval_without_predecessor() -> None:
    cycle = Cycle(id="c1", subject_id=SUBJECT, onah_start=local(2025, 1, 1, 6), onah_end=local(2025, 1, 1, 18))

    assert measured_interval(cycle, None, JERUSALEM) is None


def test_measured_interval_ignores_day_night_offset() -> None:
    previous = Cycle(id="c1", subject_id=SUBJECT, onah_start=local(2025, 1, 1, 18), onah_end=local(2025, 1, 2, 6))
    cycle = Cycle(id="c2", subject_id=SUBJECT, onah_start=local(2025, 1, 29, 6), onah_end=local(2025, 1, 29, 18))

    assert measured_interval(cycle, previous, JERUSALEM) == 28


def test_summarize() -> None:
    summary = summarize([28, 30, 29, 31])

    assert summary.count == 4
    assert summary.mean == pytest.approx(29.5)
    assert summary.median == pytest.approx(29.5)
    assert (summary.minimum, summary.maximum) == (28, 31)


def test_summarize_empty() -> None:
    summary = summarize([])

    assert summary.count == 0
    assert summary.mean is None
