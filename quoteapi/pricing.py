"""Fare computation, commission settlement and cancellation fees."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Optional, Protocol

from .errors import PricingConfigNotFoundError
from .schemas import FareBreakdown

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

ACTIVE_STATUSES = frozenset({"ACTIVE", "SCHEDULED"})
BASE_DISTANCE_KM = Decimal("2")
CANCEL_FEE_RATE = Decimal("0.20")
CANCEL_FEE_CAP_VND = Decimal("10000")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def vnd(value: Decimal | int | str) -> Decimal:
    """Round to whole VND, half up."""
    return Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingConfig:
    pricing_config_id: int
    version: datetime
    base_2km_vnd: Decimal
    after_2km_per_km_vnd: Decimal
    system_commission_rate: Decimal
    valid_from: Optional[datetime]
    valid_until: Optional[datetime] = None
    status: str = "ACTIVE"

    def is_active_at(self, at: datetime) -> bool:
        if self.status not in ACTIVE_STATUSES or self.valid_from is None:
            return False
        if at < self.valid_from:
            return False
        return self.valid_until is None or at < self.valid_until


class PricingConfigLookup(Protocol):
    def find_active(self, at: datetime) -> Optional[PricingConfig]:
        ...


@dataclass(frozen=True)
class Settlement:
    total_vnd: Decimal
    driver_share_vnd: Decimal
    commission_vnd: Decimal
    pricing_version: datetime


class PricingEngine:
    def __init__(self, configs: PricingConfigLookup, *, clock: Clock = utc_now) -> None:
        self.configs = configs
        self.clock = clock

    def active_config(self, at: Optional[datetime] = None) -> PricingConfig:
        at = at or self.clock()
        cfg = self.configs.find_active(at)
        if cfg is None:
            logger.error("no active pricing configuration at %s", at.isoformat())
            raise PricingConfigNotFoundError()
        return cfg

    def quote(
        self,
        distance_m: int,
        duration_s: int,
        traffic_factor: Optional[float] = None,
        extra: Optional[Dict[str, object]] = None,
        *,
        config: Optional[PricingConfig] = None,
    ) -> FareBreakdown:
        """Price a route.

        ``traffic_factor`` and ``extra`` are accepted for interface stability;
        no traffic adjustment is applied. When ``config`` is omitted the active
        configuration for the current clock reading is used.
        """
        cfg = config or self.active_config()
        subtotal = self._subtotal(distance_m, cfg)
        discount = vnd(0)
        total = max(vnd(subtotal - discount), vnd(cfg.base_2km_vnd))
        return FareBreakdown(
            pricing_version=cfg.version,
            distance_m=int(distance_m),
            base_2km_vnd=vnd(cfg.base_2km_vnd),
            after_2km_per_km_vnd=vnd(cfg.after_2km_per_km_vnd),
            discount_vnd=discount,
            subtotal_vnd=subtotal,
            total_vnd=total,
            commission_rate=cfg.system_commission_rate,
        )

    def settle(self, fare: FareBreakdown) -> Settlement:
        total = vnd(fare.total_vnd)
        commission = vnd(total * fare.commission_rate)
        return Settlement(
            total_vnd=total,
            driver_share_vnd=total - commission,
            commission_vnd=commission,
            pricing_version=fare.pricing_version,
        )

    def cancel_fee(self, fare: FareBreakdown) -> Decimal:
        fee = vnd(fare.total_vnd * CANCEL_FEE_RATE)
        return min(fee, CANCEL_FEE_CAP_VND)

    @staticmethod
    def _subtotal(distance_m: int, cfg: PricingConfig) -> Decimal:
        km = (Decimal(int(distance_m)) / Decimal(1000)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
        billable_km = max(km - BASE_DISTANCE_KM, Decimal(0))
        return vnd(cfg.base_2km_vnd) + vnd(vnd(cfg.after_2km_per_km_vnd) * billable_km)

