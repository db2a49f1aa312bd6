"""Stringency variant producers.

Responsibilities:
  - Define the closed set of variant computations, each keyed by the flag
    that enables it and the base forecast it derives from.
  - Apply the enabled producers uniformly to a set of base forecasts.

Invariants:
  - Variant keys are exactly the VariantKey values.
  - A producer whose base forecast is absent yields nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Mapping

from onahtrack.core.domain.enums import ForecastKind, VariantKey
from onahtrack.core.domain.models import Location, OnahPeriod, StringencyFlags
from onahtrack.core.onah.resolver import OnahResolver


@dataclass(frozen=True)
class BaseForecast:
    kind: ForecastKind
    civil_date: date
    is_day_onah: bool
    period: OnahPeriod


VariantFn = Callable[[OnahResolver, BaseForecast, Location], OnahPeriod]


def preceding_onah(resolver: OnahResolver, base: BaseForecast, location: Location) -> OnahPeriod:
    # Day base: night of the previous civil date. Night base: day of the same civil date.
    if base.is_day_onah:
        return resolver.resolve(base.civil_date - timedelta(days=1), location, False)
    return resolver.resolve(base.civil_date, location, True)


def opposite_onah(resolver: OnahResolver, base: BaseForecast, location: Location) -> OnahPeriod:
    return resolver.resolve(base.civil_date, location, not base.is_day_onah)


def extra_day(resolver: OnahResolver, base: BaseForecast, location: Location) -> OnahPeriod:
    return resolver.resolve(base.civil_date + timedelta(days=1), location, base.is_day_onah)


@dataclass(frozen=True)
class VariantProducer:
    key: VariantKey
    flag: str
    base: ForecastKind
    produce: VariantFn

    def enabled(self, flags: StringencyFlags) -> bool:
        return bool(getattr(flags, self.flag))


VARIANT_PRODUCERS: tuple[VariantProducer, ...] = (
    VariantProducer(VariantKey.MONTHLY_PRECEDING_ONAH, "preceding_onah", ForecastKind.MONTHLY, preceding_onah),
    VariantProducer(VariantKey.INTERVAL_PRECEDING_ONAH, "preceding_onah", ForecastKind.INTERVAL, preceding_onah),
    VariantProducer(VariantKey.FIXED_COUNT_PRECEDING_ONAH, "preceding_onah", ForecastKind.FIXED_COUNT, preceding_onah),
    VariantProducer(VariantKey.FIXED_COUNT_OPPOSITE_ONAH, "opposite_onah", ForecastKind.FIXED_COUNT, opposite_onah),
    VariantProducer(VariantKey.FIXED_COUNT_EXTRA_DAY, "extra_day", ForecastKind.FIXED_COUNT, extra_day),
)

_missing = [key for key in VariantKey if key not in {p.key for p in VARIANT_PRODUCERS}]
if _missing:
    raise RuntimeError(f"Missing variant producers for: {[m.value for m in _missing]}")


def apply_variants(
    resolver: OnahResolver,
    bases: Mapping[ForecastKind, BaseForecast],
    location: Location,
    flags: StringencyFlags,
    producers: tuple[VariantProducer, ...] = VARIANT_PRODUCERS,
) -> dict[str, OnahPeriod]:
    variants: dict[str, OnahPeriod] = {}
    for producer in producers:
        if not producer.enabled(flags):
            continue
        base = bases.get(producer.base)
        if base is None:
            continue
        variants[producer.key.value] = producer.produce(resolver, base, location)
    return variants
