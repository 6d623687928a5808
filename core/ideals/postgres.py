from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from psycopg2 import pool
from psycopg2.extras import Json


logger = logging.getLogger(__name__)


DDL = """
CREATE TABLE IF NOT EXISTS ideal_store (
  store_id TEXT PRIMARY KEY,
  document JSONB NOT NULL,
  updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

SELECT_SQL = "SELECT document FROM ideal_store WHERE store_id = %s;"

UPSERT_SQL = """
INSERT INTO ideal_store (store_id, document, updated_at)
VALUES (%s, %s, now())
ON CONFLICT (store_id) DO UPDATE
SET document = EXCLUDED.document, updated_at = EXCLUDED.updated_at;
"""


class PostgresIdealStorage:
    """Keeps the ideal document as a single JSONB row."""

    def __init__(self, dsn: str, *, store_id: str = "default", pool_min: int = 1, pool_max: int = 5):
        if not dsn:
            raise ValueError("DATABASE_URL is required for the postgres ideal backend")
        self.dsn = dsn
        self.store_id = store_id
        self.pool_min = pool_min
        self.pool_max = pool_max
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._table_ready = False

    def describe(self) -> str:
        return f"postgres:ideal_store/{self.store_id}"

    def _get_pool(self) -> pool.ThreadedConnectionPool:
        if self._pool is None:
            self._pool = pool.ThreadedConnectionPool(minconn=self.pool_min, maxconn=self.pool_max, dsn=self.dsn)
            logger.info("DB pool initialized (min=%s max=%s)", self.pool_min, self.pool_max)
        return self._pool

    def _ensure_table(self, conn) -> None:
        if self._table_ready:
            return
        with conn.cursor() as cur:
            cur.execute(DDL)
        conn.commit()
        self._table_ready = True

    def load_document(self) -> Dict[str, Any]:
        db_pool = self._get_pool()
        conn = db_pool.getconn()
        try:
            self._ensure_table(conn)
            with conn.cursor() as cur:
                cur.execute(SELECT_SQL, (self.store_id,))
                row = cur.fetchone()
            conn.commit()
        finally:
            db_pool.putconn(conn)
        if row is None:
            return {}
        document = row[0]
        if not isinstance(document, dict):
            raise ValueError(f"{self.describe()} does not hold a JSON object")
        return document

    def save_document(self, document: Dict[str, Any]) -> None:
        db_pool = self._get_pool()
        conn = db_pool.getconn()
        try:
            self._ensure_table(conn)
            with conn.cursor() as cur:
                cur.execute(UPSERT_SQL, (self.store_id, Json(document)))
            conn.commit()
        except Exception:
            try:
                conn.rollback()
            except Exception:
                logger.exception("Rollback failed")
            raise
        finally:
            db_pool.putconn(conn)

    def close(self) -> None:
        if self._pool is not None:
            try:
                self._pool.closeall()
            except Exception:
                logger.exception("Error closing DB pool")
        self._pool = None
