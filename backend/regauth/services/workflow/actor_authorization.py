"""
Actor Authorization

Answers "is this caller a recognized applicant / decision / oversight actor?"
Side-effect free. Owns no decision state.

The engine receives an instance as a dependency; it never consults a
global registry.
"""
from typing import Dict, Iterable, Set

from sqlalchemy.orm import Session

from ...models.db_models import ActorRole, ActorRoleDB


class ActorAuthorization:
    """Capability interface queried once per workflow operation."""

    def is_authorized(self, actor_id: str, role: ActorRole) -> bool:
        raise NotImplementedError

    def is_recognized(self, actor_id: str) -> bool:
        """True if the actor holds any role at all."""
        return any(self.is_authorized(actor_id, role) for role in ActorRole)


class StaticActorAuthorization(ActorAuthorization):
    """
    In-memory role table.

    grants: {actor_id: [ActorRole, ...]}
    """

    def __init__(self, grants: Dict[str, Iterable[ActorRole]] = None):
        self._grants: Dict[str, Set[ActorRole]] = {
            actor_id: set(roles) for actor_id, roles in (grants or {}).items()
        }

    def is_authorized(self, actor_id: str, role: ActorRole) -> bool:
        return role in self._grants.get(actor_id, set())


class DatabaseActorAuthorization(ActorAuthorization):
    """Reads role grants from the actor_roles table."""

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session

    def is_authorized(self, actor_id: str, role: ActorRole) -> bool:
        if not actor_id:
            return False
        grant = self.db.query(ActorRoleDB).filter(
            ActorRoleDB.actor_id == actor_id,
            ActorRoleDB.role == role,
        ).first()
        return grant is not None

    def is_recognized(self, actor_id: str) -> bool:
        if not actor_id:
            return False
        return self.db.query(ActorRoleDB).filter(
            ActorRoleDB.actor_id == actor_id
        ).count() > 0
