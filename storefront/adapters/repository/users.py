"""
PostgreSQL user repository - Implements the UserRepository protocol.

Emails are stored normalized and protected by a unique index; a
UniqueViolation from the database is reported as EmailAlreadyRegistered,
which closes the gap between a service-level existence check and the
insert.
"""

import logging
from uuid import UUID, uuid4

from psycopg.errors import UniqueViolation
from psycopg_pool import ConnectionPool

from storefront.domain.exceptions import EmailAlreadyRegistered, UserNotFound
from storefront.domain.models import NewUser, User
from storefront.domain.passwords import MIN_BCRYPT_COST, hash_password

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, email, first_name, last_name, password_hash, is_admin, is_blocked, created_at, updated_at"
)


def _row_to_user(row: tuple) -> User:
    return User(
        id=row[0],
        email=row[1],
        first_name=row[2],
        last_name=row[3],
        password_hash=row[4],
        is_admin=row[5],
        is_blocked=row[6],
        created_at=row[7],
        updated_at=row[8],
    )


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool, bcrypt_cost: int = MIN_BCRYPT_COST) -> None:
        """
        Args:
            pool: psycopg3 ConnectionPool for database connections
            bcrypt_cost: Work factor used when save() re-hashes a password
        """
        self._pool = pool
        self._bcrypt_cost = bcrypt_cost

    def find_by_email(self, email: str) -> User | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(f"SELECT {_COLUMNS} FROM users WHERE email = %s", (email,))
            row = cursor.fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: UUID) -> User | None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(f"SELECT {_COLUMNS} FROM users WHERE id = %s", (user_id,))
            row = cursor.fetchone()
        return _row_to_user(row) if row is not None else None

    def create(self, new_user: NewUser) -> User:
        sql = f"""
            INSERT INTO users (id, email, first_name, last_name, name, password_hash, is_admin)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING {_COLUMNS}
        """
        params = (
            uuid4(),
            new_user.email,
            new_user.first_name,
            new_user.last_name,
            new_user.name,
            new_user.password_hash,
            new_user.is_admin,
        )
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation as exc:
            raise EmailAlreadyRegistered(new_user.email) from exc
        return _row_to_user(row)

    def save(self, user: User) -> User:
        """
        Write the user back.

        The password is hashed here, and only when a new plaintext was set.
        """
        password_hash = user.password_hash
        if user.password_changed:
            password_hash = hash_password(user.new_password, self._bcrypt_cost)

        sql = """
            UPDATE users
            SET email = %s,
                first_name = %s,
                last_name = %s,
                name = %s,
                password_hash = %s,
                is_admin = %s,
                is_blocked = %s,
                updated_at = NOW()
            WHERE id = %s
            RETURNING updated_at
        """
        params = (
            user.email,
            user.first_name,
            user.last_name,
            user.name,
            password_hash,
            user.is_admin,
            user.is_blocked,
            user.id,
        )
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation as exc:
            raise EmailAlreadyRegistered(user.email) from exc

        if row is None:
            raise UserNotFound(str(user.id))

        user.password_hash = password_hash
        user.new_password = None
        user.updated_at = row[0]
        return user

    def delete(self, user_id: UUID) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM users WHERE id = %s", (user_id,))
            conn.commit()
            return cursor.rowcount == 1

    def search(self, term: str, offset: int, limit: int) -> tuple[list[User], int]:
        where = ""
        params: tuple = ()
        if term:
            where = """
                WHERE name ILIKE %s OR email ILIKE %s
                   OR first_name ILIKE %s OR last_name ILIKE %s
            """
            params = (_like_pattern(term),) * 4

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM users {where}", params)
            total = cursor.fetchone()[0]
            cursor.execute(
                f"SELECT {_COLUMNS} FROM users {where} ORDER BY created_at DESC LIMIT %s OFFSET %s",
                params + (limit, offset),
            )
            rows = cursor.fetchall()
        return [_row_to_user(row) for row in rows], total
