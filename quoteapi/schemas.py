"""Pydantic request/response schemas for the quote API."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LatLng(BaseModel):
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class QuoteRequest(BaseModel):
    pickup: LatLng
    dropoff: LatLng
    pickupLocationId: Optional[int] = None
    dropoffLocationId: Optional[int] = None


class FareBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    pricing_version: datetime
    distance_m: int
    base_2km_vnd: Decimal
    after_2km_per_km_vnd: Decimal
    discount_vnd: Decimal
    subtotal_vnd: Decimal
    total_vnd: Decimal
    commission_rate: Decimal


class Quote(BaseModel):
    """Immutable fare estimate; valid while ``now < expires_at``."""

    model_config = ConfigDict(frozen=True)

    quote_id: UUID
    rider_id: int
    pickup_location_id: Optional[int] = None
    dropoff_location_id: Optional[int] = None
    pickup_lat: float
    pickup_lng: float
    dropoff_lat: float
    dropoff_lng: float
    distance_m: int = Field(ge=0)
    duration_s: int = Field(ge=0)
    polyline: str
    pricing_config_id: int
    fare: FareBreakdown
    created_at: datetime
    expires_at: datetime

    def is_valid_at(self, now: datetime) -> bool:
        return now < self.expires_at


class QuoteResponse(BaseModel):
    quoteId: UUID
    distanceM: int
    durationS: int
    polyline: str
    fare: FareBreakdown
    createdAt: datetime
    expiresAt: datetime

    @classmethod
    def from_quote(cls, quote: Quote) -> "QuoteResponse":
        return cls(
            quoteId=quote.quote_id,
            distanceM=quote.distance_m,
            durationS=quote.duration_s,
            polyline=quote.polyline,
            fare=quote.fare,
            createdAt=quote.created_at,
            expiresAt=quote.expires_at,
        )


class BalanceResponse(BaseModel):
    walletId: int
    availableBalance: Decimal
    pendingBalance: Decimal
    totalBalance: Decimal


class ErrorBody(BaseModel):
    code: str
    message: str
