#!/usr/bin/env python3
"""
Role Grant Script
Grants a workflow role to an actor and prints a bearer token for it.

Usage:
    python -m scripts.grant_role <actor_id> <APPLICANT|DECISION_AUTHORITY|OVERSIGHT_AUTHORITY>

Example:
    python -m scripts.grant_role national-authority DECISION_AUTHORITY
"""
import sys
import os

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from regauth.database import SessionLocal, init_db
from regauth.models.db_models import ActorRole, ActorRoleDB
from regauth.auth import create_access_token


def grant_role(db: Session, actor_id: str, role: ActorRole) -> bool:
    """Grant role to actor_id. Returns False if the grant already exists."""
    existing = db.query(ActorRoleDB).filter(
        ActorRoleDB.actor_id == actor_id,
        ActorRoleDB.role == role,
    ).first()
    if existing:
        return False

    db.add(ActorRoleDB(actor_id=actor_id, role=role))
    db.commit()
    return True


def main():
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)

    actor_id = sys.argv[1]
    try:
        role = ActorRole(sys.argv[2].upper())
    except ValueError:
        print(f"Error: Unknown role '{sys.argv[2]}'.")
        sys.exit(1)

    # Ensure tables exist
    init_db()

    db = SessionLocal()
    try:
        if grant_role(db, actor_id, role):
            print(f"Granted {role.value} to {actor_id}")
        else:
            print(f"{actor_id} already holds {role.value}")
        print(f"  Token: {create_access_token(actor_id)}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
