# models/property_invitation.py
"""
PropertyInvitation model - a time-bounded offer to join a property with a role.

The token is the acceptance credential. Status leaves PENDING exactly once:
to ACTIVE (accepted), REVOKED (cancelled) or INACTIVE (expired).
"""
import enum
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, Index
from sqlalchemy.orm import relationship
from .base import Base, utcnow
from .property_grant import Role


class InvitationStatus(str, enum.Enum):
     """Invitation status. ACTIVE means accepted."""
     PENDING = "PENDING"
     ACTIVE = "ACTIVE"
     INACTIVE = "INACTIVE"
     REVOKED = "REVOKED"


class PropertyInvitation(Base):
     __tablename__ = "property_invitations"

     id = Column(Integer, primary_key=True, autoincrement=True)
     property_id = Column(
          Integer,
          ForeignKey("properties.id", ondelete="CASCADE"),
          nullable=False
     )

     # Invitee may not have an account yet
     email = Column(String(255), nullable=False, index=True)
     role = Column(
          Enum(Role, name="invitation_role", create_constraint=True),
          default=Role.VIEWER,
          nullable=False
     )
     permissions = Column(JSON, default=dict, nullable=False)

     invited_by = Column(Integer, ForeignKey("users.id"), nullable=False)
     token = Column(String(64), nullable=False, unique=True, index=True)
     expires_at = Column(DateTime, nullable=False)
     accepted_at = Column(DateTime, nullable=True)
     accepted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
     status = Column(
          Enum(InvitationStatus, name="invitation_status", create_constraint=True),
          default=InvitationStatus.PENDING,
          nullable=False
     )

     # Timestamps
     created_at = Column(DateTime, default=utcnow, nullable=False)
     updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

     # Relationships
     property = relationship("Property", back_populates="invitations")

     __table_args__ = (
          Index("ix_property_invitations_property_status", "property_id", "status"),
          Index("ix_property_invitations_expires_at", "expires_at"),
     )

     def __repr__(self):
          return (
               f"<PropertyInvitation(id={self.id}, property_id={self.property_id}, "
               f"email='{self.email}', status='{self.status.value}')>"
          )

     def is_expired(self, now=None) -> bool:
          """Check if the invitation's expiry instant has passed."""
          return (now or utcnow()) > self.expires_at
