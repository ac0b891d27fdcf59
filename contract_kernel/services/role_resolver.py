"""
contract_kernel.services.role_resolver -- User role lookup and assignment.

Responsibility:
    Resolve the application role of a user, creating the default ``user``
    role on first lookup, and let admins change roles.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/ and
    contract_engines (authorization guards).

Invariants enforced:
    - Fail closed: ``resolve`` never raises.  Any lookup or insert error
      yields ``Role.USER``, the least-privileged role.
    - The lazy insert runs in a SAVEPOINT so a failure (e.g. a concurrent
      insert of the same user) does not poison the caller's transaction.
    - Only admins may assign roles.

Failure modes:
    - ForbiddenError from ``assign_role`` for non-admin actors.
    - PersistenceError from ``assign_role`` on database errors.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from contract_engines.authorization import check_manage_roles
from contract_kernel.domain.dtos import Actor
from contract_kernel.domain.roles import Role
from contract_kernel.exceptions import ForbiddenError
from contract_kernel.logging_config import get_logger
from contract_kernel.models.user_role import UserRoleModel
from contract_kernel.services.base import BaseService

logger = get_logger("services.role_resolver")


class RoleResolverProtocol(Protocol):
    """Role lookup collaborator."""

    def resolve(self, user_id: UUID) -> Role: ...


class RoleResolver(BaseService[UserRoleModel]):
    """Role lookup backed by the ``user_roles`` table."""

    def _find(self, user_id: UUID) -> UserRoleModel | None:
        stmt = select(UserRoleModel).where(UserRoleModel.user_id == user_id)
        return self.session.scalars(stmt).one_or_none()

    def resolve(self, user_id: UUID) -> Role:
        """Role of ``user_id``; creates a ``user`` row if none exists."""
        try:
            row = self._find(user_id)
            if row is not None:
                return Role(row.role)

            with self.session.begin_nested():
                self.session.add(UserRoleModel(user_id=user_id, role=Role.USER.value))
                self.session.flush()
            logger.info("user_role_created", extra={"user_id": str(user_id)})
            return Role.USER
        except (SQLAlchemyError, ValueError):
            logger.warning(
                "role_resolution_failed",
                extra={"user_id": str(user_id), "fallback_role": Role.USER.value},
                exc_info=True,
            )
            return Role.USER

    def actor_for(self, user_id: UUID) -> Actor:
        return Actor(user_id=user_id, role=self.resolve(user_id))

    def assign_role(self, user_id: UUID, role: Role, actor: Actor) -> Role:
        """Set the role of ``user_id``.  Only admins may do this."""
        role = Role(role)
        guard = check_manage_roles(actor)
        if not guard.allowed:
            logger.warning(
                "role_assignment_forbidden",
                extra={
                    "user_id": str(user_id),
                    "actor_id": str(actor.user_id),
                    "actor_role": actor.role.value,
                },
            )
            raise ForbiddenError("assign_role", actor.role.value, guard.reason)

        with self._persistence("user_role_assign"):
            row = self._find(user_id)
            previous = row.role if row is not None else None
            if row is None:
                self.session.add(UserRoleModel(user_id=user_id, role=role.value))
            else:
                row.role = role.value
            self.session.flush()

        logger.info(
            "user_role_assigned",
            extra={
                "user_id": str(user_id),
                "previous_role": previous,
                "new_role": role.value,
                "actor_id": str(actor.user_id),
            },
        )
        return role
