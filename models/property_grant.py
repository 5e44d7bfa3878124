# models/property_grant.py
"""
PropertyGrant model - one user's standing relationship to one property.

A grant carries the user's role on the property and its lifecycle status.
Only ACTIVE grants confer access. The (property_id, user_id) pair is unique:
writes go through GrantStore.upsert, never a plain insert.
"""
import enum
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum, JSON, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class Role(str, enum.Enum):
     """Property roles, listed from most to least powerful."""
     OWNER = "OWNER"
     PROPERTY_MANAGER = "PROPERTY_MANAGER"
     LEASING_AGENT = "LEASING_AGENT"
     MAINTENANCE_COORDINATOR = "MAINTENANCE_COORDINATOR"
     VIEWER = "VIEWER"


class GrantStatus(str, enum.Enum):
     """Grant lifecycle status."""
     PENDING = "PENDING"
     ACTIVE = "ACTIVE"
     INACTIVE = "INACTIVE"
     REVOKED = "REVOKED"


class PropertyGrant(Base):
     __tablename__ = "property_grants"

     id = Column(Integer, primary_key=True, autoincrement=True)

     # Foreign keys
     property_id = Column(
          Integer,
          ForeignKey("properties.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

     role = Column(
          Enum(Role, name="grant_role", create_constraint=True),
          default=Role.VIEWER,
          nullable=False,
          index=True
     )
     status = Column(
          Enum(GrantStatus, name="grant_status", create_constraint=True),
          default=GrantStatus.PENDING,
          nullable=False,
          index=True
     )
     # Per-grant overrides layered on top of the role matrix: {"manage_tenants": true}
     permissions = Column(JSON, default=dict, nullable=False)

     # Null for the original owner
     invited_by = Column(Integer, ForeignKey("users.id"), nullable=True)
     invited_at = Column(DateTime, default=utcnow, nullable=False)
     accepted_at = Column(DateTime, nullable=True)

     # Timestamps
     created_at = Column(DateTime, default=utcnow, nullable=False)
     updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

     __table_args__ = (
          UniqueConstraint("property_id", "user_id", name="uq_property_grants_property_user"),
          Index("ix_property_grants_user_status", "user_id", "status"),
     )

     def __repr__(self):
          return (
               f"<PropertyGrant(property_id={self.property_id}, user_id={self.user_id}, "
               f"role='{self.role.value}', status='{self.status.value}')>"
          )

     @property
     def is_active(self) -> bool:
          return self.status == GrantStatus.ACTIVE

     @property
     def is_active_owner(self) -> bool:
          return self.status == GrantStatus.ACTIVE and self.role == Role.OWNER

     # Relationships. Declared last: the attribute shadows the builtin
     # `property` for the rest of the class body.
     property = relationship("Property", back_populates="grants")
