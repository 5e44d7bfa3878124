# services/identity.py
"""Identity lookups against the users table (email <-> user id)."""
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import User
from services.exceptions import storage_errors
from services.invitation_store import normalize_email


class IdentityProvider:

     def __init__(self, db: Session):
          self.db = db

     def resolve_email(self, email: str) -> Optional[int]:
          """Return the id of the active user registered with this email, if any."""
          with storage_errors("user lookup"):
               user = (
                    self.db.query(User)
                    .filter(func.lower(User.email) == normalize_email(email), User.is_active.is_(True))
                    .first()
               )
          return user.id if user else None

     def email_of(self, user_id: int) -> Optional[str]:
          with storage_errors("user lookup"):
               user = self.db.query(User).filter(User.id == user_id).first()
          return user.email if user else None
