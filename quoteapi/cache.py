"""Time-bounded quote storage.

Expiry is checked on every read against the caller's clock, so an expired
quote is reported absent even when its row or entry still exists. Purging is
reclamation only.
"""
from __future__ import annotations

import logging
import threading
from datetime import timedelta
from typing import Dict, Optional
from uuid import UUID

import psycopg
from psycopg.types.json import Jsonb

from .errors import InvalidInputError
from .pricing import Clock, utc_now
from .schemas import Quote

logger = logging.getLogger(__name__)


SWEEP_INTERVAL_SEC = 60


class QuoteCache:
    def __init__(self, *, clock: Clock = utc_now, sweep_interval_sec: float = SWEEP_INTERVAL_SEC) -> None:
        self.clock = clock
        self.sweep_interval = timedelta(seconds=sweep_interval_sec)
        self._last_sweep = clock()

    def save(self, quote: Quote) -> None:
        now = self.clock()
        if not quote.is_valid_at(now):
            raise InvalidInputError("Cannot cache an already expired quote")
        self._store(quote)
        # Quotes nobody reads again are only reclaimed here.
        if now - self._last_sweep >= self.sweep_interval:
            self._last_sweep = now
            self.purge_expired()

    def load(self, quote_id: UUID) -> Optional[Quote]:
        raise NotImplementedError

    def load_by_rider(self, rider_id: int) -> Optional[Quote]:
        raise NotImplementedError

    def evict(self, quote_id: UUID) -> None:
        raise NotImplementedError

    def take(self, quote_id: UUID) -> Optional[Quote]:
        """Atomically load and remove a valid quote."""
        raise NotImplementedError

    def purge_expired(self) -> int:
        raise NotImplementedError

    def _store(self, quote: Quote) -> None:
        raise NotImplementedError


class InMemoryQuoteCache(QuoteCache):
    def __init__(self, *, clock: Clock = utc_now, sweep_interval_sec: float = SWEEP_INTERVAL_SEC) -> None:
        super().__init__(clock=clock, sweep_interval_sec=sweep_interval_sec)
        self._entries: Dict[UUID, Quote] = {}
        self._lock = threading.Lock()

    def _store(self, quote: Quote) -> None:
        with self._lock:
            self._entries[quote.quote_id] = quote

    def load(self, quote_id: UUID) -> Optional[Quote]:
        now = self.clock()
        with self._lock:
            quote = self._entries.get(quote_id)
            if quote is None:
                return None
            if not quote.is_valid_at(now):
                del self._entries[quote_id]
                return None
            return quote

    def load_by_rider(self, rider_id: int) -> Optional[Quote]:
        now = self.clock()
        with self._lock:
            for quote in self._entries.values():
                if quote.rider_id == rider_id and quote.is_valid_at(now):
                    return quote
        return None

    def evict(self, quote_id: UUID) -> None:
        with self._lock:
            self._entries.pop(quote_id, None)

    def take(self, quote_id: UUID) -> Optional[Quote]:
        now = self.clock()
        with self._lock:
            quote = self._entries.pop(quote_id, None)
        if quote is None or not quote.is_valid_at(now):
            return None
        return quote

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [qid for qid, q in self._entries.items() if not q.is_valid_at(now)]
            for qid in expired:
                del self._entries[qid]
        logger.debug("purged %d expired quotes", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class PostgresQuoteCache(QuoteCache):
    def __init__(
        self, dsn: str, *, clock: Clock = utc_now, sweep_interval_sec: float = SWEEP_INTERVAL_SEC
    ) -> None:
        super().__init__(clock=clock, sweep_interval_sec=sweep_interval_sec)
        self.dsn = dsn
        self._ensure_table()

    def _ensure_table(self) -> None:  # pragma: no cover - DDL
        sql = """
        CREATE TABLE IF NOT EXISTS quote_cache (
            quote_id UUID PRIMARY KEY,
            rider_id INTEGER NOT NULL,
            payload JSONB NOT NULL,
            expires_at TIMESTAMPTZ NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        """
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:
            cur.execute(sql)
            conn.commit()

    def _store(self, quote: Quote) -> None:
        sql = """
        INSERT INTO quote_cache (quote_id, rider_id, payload, expires_at)
        VALUES (%s, %s, %s, %s)
        """
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:
            cur.execute(
                sql,
                (
                    quote.quote_id,
                    quote.rider_id,
                    Jsonb(quote.model_dump(mode="json")),
                    quote.expires_at,
                ),
            )
            conn.commit()

    def _select_one(self, where: str, params: tuple) -> Optional[Quote]:
        sql = f"""
        SELECT payload
        FROM quote_cache
        WHERE {where}
          AND expires_at > %s
        ORDER BY created_at
        LIMIT 1
        """
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:
            cur.execute(sql, (*params, self.clock()))
            row = cur.fetchone()
        if not row:
            return None
        return Quote.model_validate(row[0])

    def load(self, quote_id: UUID) -> Optional[Quote]:
        return self._select_one("quote_id = %s", (quote_id,))

    def load_by_rider(self, rider_id: int) -> Optional[Quote]:
        return self._select_one("rider_id = %s", (rider_id,))

    def evict(self, quote_id: UUID) -> None:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:
            cur.execute("DELETE FROM quote_cache WHERE quote_id = %s", (quote_id,))
            conn.commit()

    def take(self, quote_id: UUID) -> Optional[Quote]:
        sql = """
        DELETE FROM quote_cache
        WHERE quote_id = %s
          AND expires_at > %s
        RETURNING payload
        """
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:
            cur.execute(sql, (quote_id, self.clock()))
            row = cur.fetchone()
            conn.commit()
        if not row:
            return None
        return Quote.model_validate(row[0])

    def purge_expired(self) -> int:
        with psycopg.connect(self.dsn) as conn, conn.cursor() as cur:
            cur.execute("DELETE FROM quote_cache WHERE expires_at <= %s", (self.clock(),))
            removed = cur.rowcount
            conn.commit()
        logger.debug("purged %d expired quotes", removed)
        return removed
