"""
Account domain service - login, profile maintenance and admin user management.
"""

import logging
import math
from dataclasses import dataclass
from uuid import UUID

from .exceptions import (
    AccountBlocked,
    AdminAccountProtected,
    EmailAlreadyRegistered,
    InvalidCredentials,
    UserNotFound,
)
from .models import User, UserPage
from .otp import normalize_email
from .passwords import check_password
from .ports import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


@dataclass
class AccountService:
    users: UserRepository

    def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials for an authenticated request.

        Raises:
            InvalidCredentials: Unknown email or wrong password
            AccountBlocked: Credentials valid but the account is blocked
        """
        user = self.users.find_by_email(normalize_email(email))
        # Always run bcrypt, even for unknown emails
        valid = check_password(password, user.password_hash if user else None)
        if user is None or not valid:
            raise InvalidCredentials("Invalid email or password")
        if user.is_blocked:
            raise AccountBlocked(user.email)
        return user

    def login(self, email: str, password: str, admin_login: bool = False) -> User:
        """
        Authenticate and enforce role separation.

        The customer path refuses administrators and the admin path refuses
        customers, so each login form only admits its own audience.

        Raises:
            InvalidCredentials: Unknown email, wrong password, or wrong role
            AccountBlocked: Credentials valid but the account is blocked
        """
        user = self.authenticate(email, password)
        if not admin_login and user.is_admin:
            raise InvalidCredentials("You are not our user")
        if admin_login and not user.is_admin:
            raise InvalidCredentials("Not authorized as an admin")
        return user

    def update_profile(
        self,
        user: User,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> User:
        """Apply non-empty fields; the password is re-hashed only when given."""
        if first_name:
            user.first_name = first_name.strip()
        if last_name:
            user.last_name = last_name.strip()
        if email:
            new_email = normalize_email(email)
            if new_email != user.email:
                existing = self.users.find_by_email(new_email)
                if existing is not None and existing.id != user.id:
                    raise EmailAlreadyRegistered(new_email)
                user.email = new_email
        if password:
            user.set_password(password)
        return self.users.save(user)

    def list_users(self, search: str = "", page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> UserPage:
        page = max(page, 1)
        limit = max(limit, 1)
        users, total = self.users.search(search.strip(), offset=limit * (page - 1), limit=limit)
        return UserPage(users=users, page=page, pages=math.ceil(total / limit), total=total)

    def block_user(self, user_id: UUID) -> User:
        user = self._get(user_id)
        if user.is_admin:
            raise AdminAccountProtected("Cannot block admin user")
        user.is_blocked = True
        logger.info("Blocked user %s", user.email)
        return self.users.save(user)

    def unblock_user(self, user_id: UUID) -> User:
        user = self._get(user_id)
        user.is_blocked = False
        logger.info("Unblocked user %s", user.email)
        return self.users.save(user)

    def delete_user(self, user_id: UUID) -> None:
        user = self._get(user_id)
        if user.is_admin:
            raise AdminAccountProtected("Cannot delete admin user")
        if not self.users.delete(user_id):
            raise UserNotFound(str(user_id))
        logger.info("Removed user %s", user.email)

    def _get(self, user_id: UUID) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise UserNotFound(str(user_id))
        return user
