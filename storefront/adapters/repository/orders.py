"""
PostgreSQL order repository - Implements the OrderRepository protocol.
"""

from datetime import datetime
from uuid import UUID

from psycopg_pool import ConnectionPool

from storefront.domain.models import PaymentResult


class PostgresOrderRepository:
    """Implements OrderRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def mark_paid(self, order_id: UUID, paid_at: datetime, result: PaymentResult) -> bool:
        """
        Overwrite payment columns in one UPDATE.

        Overwrite rather than increment, so repeated provider callbacks
        converge on the same row state.
        """
        sql = """
            UPDATE orders
            SET is_paid = TRUE,
                paid_at = %s,
                payment_id = %s,
                payment_status = %s,
                payment_update_time = %s,
                payment_email_address = %s
            WHERE id = %s
        """
        params = (
            paid_at,
            result.id,
            result.status,
            result.update_time,
            result.email_address,
            order_id,
        )

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()
            return cursor.rowcount == 1
