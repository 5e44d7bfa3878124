# models/property.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from .base import Base


class Property(Base):
     """
     Property model - represents a condo/apartment building.
     Maps to existing 'properties' table in the database.

     landlord_id is the legacy single-owner reference. It predates the
     property_grants table, is never written by the access service and stays
     readable as the ownership fallback.
     """
     __tablename__ = "properties"

     id = Column(Integer, primary_key=True, autoincrement=True)
     property_name = Column(String(255), nullable=False)
     landlord_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
     description = Column(Text, nullable=True)

     # Address
     street = Column(String(255), nullable=True)
     city = Column(String(100), nullable=True)
     province = Column(String(100), nullable=True)

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     updated_at = Column(DateTime, onupdate=func.now(), nullable=True)

     # Relationships
     property_units = relationship("PropertyUnit", back_populates="property", cascade="all, delete-orphan")
     tenants = relationship("Tenant", back_populates="property", cascade="all, delete-orphan")
     grants = relationship("PropertyGrant", back_populates="property", cascade="all, delete-orphan", passive_deletes=True)
     invitations = relationship("PropertyInvitation", back_populates="property", cascade="all, delete-orphan", passive_deletes=True)

     def __repr__(self):
          return f"<Property(id={self.id}, name='{self.property_name}')>"
