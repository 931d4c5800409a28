"""
PostgreSQL OTP ledger - Implements the OtpLedger protocol.

One row per (email, purpose), enforced by a unique index. Writes use
INSERT ... ON CONFLICT DO UPDATE so concurrent requests for the same key
are last-write-wins. Every write assigns a fresh row id, which invalidates
any verification still holding the previous record.

Consumption is a DELETE by id whose rowcount tells the caller whether it
won; a second concurrent consumer deletes nothing.
"""

import logging
from datetime import datetime
from uuid import UUID, uuid4

from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from storefront.domain.models import OtpPurpose, OtpRecord, RegistrationPayload

logger = logging.getLogger(__name__)

_COLUMNS = "id, email, purpose, code, payload, created_at, expires_at"


def _row_to_record(row: tuple) -> OtpRecord:
    payload = RegistrationPayload.from_dict(row[4]) if row[4] is not None else None
    return OtpRecord(
        id=row[0],
        email=row[1],
        purpose=OtpPurpose(row[2]),
        code=row[3],
        payload=payload,
        created_at=row[5],
        expires_at=row[6],
    )


class PostgresOtpLedger:
    """
    Implements OtpLedger protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def upsert(
        self,
        email: str,
        purpose: OtpPurpose,
        code: str,
        expires_at: datetime,
        payload: RegistrationPayload | None = None,
    ) -> OtpRecord:
        """Replace the record for (email, purpose) in a single statement."""
        sql = f"""
            INSERT INTO otp_codes (id, email, purpose, code, payload, created_at, expires_at)
            VALUES (%s, %s, %s, %s, %s, NOW(), %s)
            ON CONFLICT (email, purpose) DO UPDATE
            SET id = EXCLUDED.id,
                code = EXCLUDED.code,
                payload = EXCLUDED.payload,
                created_at = EXCLUDED.created_at,
                expires_at = EXCLUDED.expires_at
            RETURNING {_COLUMNS}
        """
        params = (
            uuid4(),
            email,
            purpose.value,
            code,
            Jsonb(payload.to_dict()) if payload is not None else None,
            expires_at,
        )

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            conn.commit()
        return _row_to_record(row)

    def find_live(self, email: str, purpose: OtpPurpose, now: datetime) -> OtpRecord | None:
        """Evict an expired record for the key, then return the live one if any."""
        evict_sql = """
            DELETE FROM otp_codes
            WHERE email = %s AND purpose = %s AND expires_at <= %s
        """
        select_sql = f"""
            SELECT {_COLUMNS}
            FROM otp_codes
            WHERE email = %s AND purpose = %s AND expires_at > %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(evict_sql, (email, purpose.value, now))
            if cursor.rowcount:
                logger.debug("Evicted expired %s code for %s", purpose.value, email)
            cursor.execute(select_sql, (email, purpose.value, now))
            row = cursor.fetchone()
            conn.commit()
        return _row_to_record(row) if row is not None else None

    def delete_if_present(self, record_id: UUID) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM otp_codes WHERE id = %s", (record_id,))
            conn.commit()
            return cursor.rowcount == 1

    def delete_all_expired(self, now: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM otp_codes WHERE expires_at <= %s", (now,))
            conn.commit()
            return cursor.rowcount
