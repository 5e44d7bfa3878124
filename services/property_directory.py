# services/property_directory.py
"""
Property Directory - read-only view of the properties table.

Supplies existence, display name and the legacy single-owner reference
(landlord_id). The access service never writes through this module.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from models import Property
from services.exceptions import NotFound, storage_errors


@dataclass(frozen=True)
class PropertyRecord:
     id: int
     name: str
     legacy_owner_id: Optional[int] = None


def _to_record(prop: Property) -> PropertyRecord:
     return PropertyRecord(id=prop.id, name=prop.property_name, legacy_owner_id=prop.landlord_id)


class PropertyDirectory:

     def __init__(self, db: Session):
          self.db = db

     def find(self, property_id: int) -> Optional[PropertyRecord]:
          with storage_errors("property lookup"):
               prop = self.db.query(Property).filter(Property.id == property_id).first()
          return _to_record(prop) if prop else None

     def get(self, property_id: int) -> PropertyRecord:
          record = self.find(property_id)
          if record is None:
               raise NotFound(f"Property with ID {property_id} not found", {"property_id": property_id})
          return record

     def legacy_owner_of(self, property_id: int) -> Optional[int]:
          record = self.find(property_id)
          return record.legacy_owner_id if record else None

     def names(self, property_ids: Iterable[int]) -> Dict[int, str]:
          ids = list(set(property_ids))
          if not ids:
               return {}
          with storage_errors("property lookup"):
               rows = self.db.query(Property.id, Property.property_name).filter(Property.id.in_(ids)).all()
          return {row[0]: row[1] for row in rows}

     def legacy_owned_by(self, user_id: int) -> List[PropertyRecord]:
          with storage_errors("property lookup"):
               props = self.db.query(Property).filter(Property.landlord_id == user_id).order_by(Property.id).all()
          return [_to_record(p) for p in props]

     def with_legacy_owner(self) -> List[PropertyRecord]:
          """Every property that still carries a landlord_id."""
          with storage_errors("property lookup"):
               props = self.db.query(Property).filter(Property.landlord_id.isnot(None)).order_by(Property.id).all()
          return [_to_record(p) for p in props]
