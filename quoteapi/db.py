"""Database helpers for pricing configurations, saved locations and the wallet ledger."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterator, Optional

import psycopg

from .pricing import PricingConfig
from .quotes import Location


@contextmanager
def get_conn(dsn: str) -> Iterator[psycopg.Connection]:
    conn = psycopg.connect(dsn)
    try:
        yield conn
    finally:
        conn.close()


_CONFIG_COLUMNS = """
    pricing_config_id, version, base_2km_vnd, after_2km_per_km_vnd,
    system_commission_rate, valid_from, valid_until, status
"""


def _row_to_config(row: Dict[str, object]) -> PricingConfig:
    return PricingConfig(
        pricing_config_id=int(row["pricing_config_id"]),
        version=row["version"],
        base_2km_vnd=Decimal(row["base_2km_vnd"]),
        after_2km_per_km_vnd=Decimal(row["after_2km_per_km_vnd"]),
        system_commission_rate=Decimal(row["system_commission_rate"]),
        valid_from=row["valid_from"],
        valid_until=row["valid_until"],
        status=str(row["status"]),
    )


def fetch_active_pricing_config(conn: psycopg.Connection, at: datetime) -> Optional[PricingConfig]:
    sql = f"""
    SELECT {_CONFIG_COLUMNS}
    FROM pricing_configs
    WHERE status IN ('ACTIVE', 'SCHEDULED')
      AND valid_from IS NOT NULL
      AND %s >= valid_from
      AND (valid_until IS NULL OR %s < valid_until)
    ORDER BY valid_from DESC
    LIMIT 1
    """
    with conn.cursor() as cur:
        cur.execute(sql, (at, at))
        row = cur.fetchone()
        if not row:
            return None
        cols = [c.name for c in cur.description]
    return _row_to_config(dict(zip(cols, row)))


class PostgresPricingConfigs:
    def __init__(self, dsn: str) -> None:
        self.dsn = dsn

    def find_active(self, at: datetime) -> Optional[PricingConfig]:
        with get_conn(self.dsn) as conn:
            return fetch_active_pricing_config(conn, at)


def fetch_location(conn: psycopg.Connection, location_id: int) -> Optional[Location]:
    sql = """
    SELECT location_id, name, lat, lng
    FROM locations
    WHERE location_id = %s
    """
    with conn.cursor() as cur:
        cur.execute(sql, (location_id,))
        row = cur.fetchone()
    if not row:
        return None
    return Location(location_id=int(row[0]), name=row[1], lat=float(row[2]), lng=float(row[3]))


class PostgresLocations:
    def __init__(self, dsn: str) -> None:
        self.dsn = dsn

    def find_by_id(self, location_id: int) -> Optional[Location]:
        with get_conn(self.dsn) as conn:
            return fetch_location(conn, location_id)


def sum_available_balance(conn: psycopg.Connection, wallet_id: int) -> Optional[Decimal]:
    sql = """
    SELECT SUM(
        CASE
            WHEN direction = 'IN' AND type IN ('TOPUP', 'REFUND', 'CAPTURE_FARE') THEN amount
            WHEN direction = 'OUT' AND type = 'PAYOUT' THEN -amount
            WHEN direction = 'INTERNAL' AND type = 'HOLD_CREATE' THEN -amount
            WHEN direction = 'INTERNAL' AND type = 'HOLD_RELEASE' THEN amount
            ELSE 0
        END
    )
    FROM transactions
    WHERE wallet_id = %s
      AND status = 'SUCCESS'
    """
    with conn.cursor() as cur:
        cur.execute(sql, (wallet_id,))
        row = cur.fetchone()
    return row[0] if row else None


def sum_pending_balance(conn: psycopg.Connection, wallet_id: int) -> Optional[Decimal]:
    sql = """
    SELECT SUM(
        CASE
            WHEN type = 'HOLD_CREATE' THEN amount
            WHEN type = 'HOLD_RELEASE' THEN -amount
            WHEN type = 'CAPTURE_FARE' AND direction = 'OUT' THEN -amount
            ELSE 0
        END
    )
    FROM transactions
    WHERE wallet_id = %s
      AND status = 'SUCCESS'
    """
    with conn.cursor() as cur:
        cur.execute(sql, (wallet_id,))
        row = cur.fetchone()
    return row[0] if row else None


class PostgresLedger:
    def __init__(self, dsn: str) -> None:
        self.dsn = dsn

    def available_sum(self, wallet_id: int) -> Optional[Decimal]:
        with get_conn(self.dsn) as conn:
            return sum_available_balance(conn, wallet_id)

    def pending_sum(self, wallet_id: int) -> Optional[Decimal]:
        with get_conn(self.dsn) as conn:
            return sum_pending_balance(conn, wallet_id)
