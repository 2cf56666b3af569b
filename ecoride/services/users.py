"""
User Component
==============

Account provisioning and the role rules that ride on it:

* the configured admin email always ends up with ``role = admin``;
* an identity-provider subject seen for the first time gets a default
  passenger profile;
* only employees and admins moderate, only admins suspend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ecoride.config import settings
from ecoride.domain.enums import MODERATOR_ROLES, UserRole
from ecoride.domain.exceptions import (
    Forbidden,
    UserAlreadyExists,
    UserNotFound,
    UserSuspended,
    ValidationError,
)
from ecoride.infrastructure.models import UserModel
from ecoride.infrastructure.repositories import UserRepository

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "phone")


@dataclass
class NewUser:
    external_id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole = UserRole.PASSENGER


class UserService:
    def __init__(self, users: UserRepository):
        self.users = users

    async def get_user(self, user_id: int) -> UserModel:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    async def list_users(self) -> list[UserModel]:
        return await self.users.get_all()

    async def create_user(self, data: NewUser) -> UserModel:
        if await self.users.get_by_external_id(data.external_id):
            raise UserAlreadyExists()
        if await self.users.get_by_email(data.email):
            raise UserAlreadyExists("Email already registered")

        role = data.role
        if data.email == settings.admin_email:
            role = UserRole.ADMIN

        user = await self.users.create(
            UserModel(
                external_id=data.external_id,
                email=data.email,
                first_name=data.first_name,
                last_name=data.last_name,
                phone=data.phone,
                role=role,
                credits=settings.signup_credits,
            )
        )
        logger.info("User %d created with role %s", user.id, role.value)
        return user

    async def resolve_subject(self, external_id: str) -> UserModel:
        """Map an identity-provider subject to a local user, creating one."""
        user = await self.users.get_by_external_id(external_id)
        if user is None:
            return await self.create_user(
                NewUser(
                    external_id=external_id,
                    email=f"user-{external_id}@ecoride.com",
                    first_name="Utilisateur",
                    last_name="EcoRide",
                )
            )
        if user.email == settings.admin_email and user.role != UserRole.ADMIN:
            user.role = UserRole.ADMIN
            logger.info("User %d promoted to admin", user.id)
        return user

    async def update_profile(self, user_id: int, changes: dict) -> UserModel:
        user = await self.get_user(user_id)
        for field in PROFILE_FIELDS:
            if field in changes:
                setattr(user, field, changes[field])
        return user

    async def change_role(self, user_id: int, role: str) -> UserModel:
        try:
            new_role = UserRole(role)
        except ValueError:
            raise ValidationError(f"Invalid role: {role}") from None
        user = await self.get_user(user_id)
        if user.email == settings.admin_email:
            new_role = UserRole.ADMIN
        user.role = new_role
        return user

    async def suspend_user(self, user_id: int, admin_id: int) -> UserModel:
        admin = await self.users.get_by_id(admin_id)
        if admin is None or admin.role != UserRole.ADMIN or admin.is_suspended:
            raise Forbidden("Only administrators can suspend users")
        user = await self.get_user(user_id)
        if user.id == admin.id:
            raise Forbidden("Administrators cannot suspend themselves")
        user.is_suspended = True
        logger.info("User %d suspended by admin %d", user.id, admin.id)
        return user

    # ── Guards shared with the other components ───────────────────

    async def require_active(self, user_id: int) -> UserModel:
        user = await self.get_user(user_id)
        if user.is_suspended:
            raise UserSuspended()
        return user

    async def require_moderator(self, user_id: int) -> UserModel:
        user = await self.users.get_by_id(user_id)
        if (
            user is None
            or UserRole(user.role) not in MODERATOR_ROLES
            or user.is_suspended
        ):
            raise Forbidden("Only employees can moderate ratings")
        return user
