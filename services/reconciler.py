# services/reconciler.py
"""
Legacy Ownership Reconciler.

Makes sure every property whose legacy landlord_id is set has an ACTIVE OWNER
grant. The reconciler only ever writes the grant table; landlord_id is left
untouched. When both exist and disagree, the grant table wins and the
disagreement is logged.

Run it for one property (on creation, or lazily after an authorization miss)
or for every property:

     python -m services.reconciler            # reconcile all properties
     python -m services.reconciler --sweep    # also expire overdue invitations
"""
import argparse
import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from models import Role, GrantStatus, utcnow
from services.exceptions import AccessControlError
from services.grant_store import GrantStore
from services.property_directory import PropertyDirectory

logger = logging.getLogger(__name__)


class ReconcileOutcome(str, enum.Enum):
     CREATED = "CREATED"                # OWNER grant created from landlord_id
     PROMOTED = "PROMOTED"              # landlord's existing grant raised to ACTIVE OWNER
     ALREADY_OWNED = "ALREADY_OWNED"    # landlord already holds the ACTIVE OWNER grant
     DISAGREES = "DISAGREES"            # another user owns it in the grant table; grant table wins
     NO_LEGACY_OWNER = "NO_LEGACY_OWNER"
     ERROR = "ERROR"


@dataclass
class ReconcileResult:
     property_id: int
     outcome: ReconcileOutcome
     legacy_owner_id: Optional[int] = None
     message: str = ""


@dataclass
class ReconcileReport:
     results: List[ReconcileResult] = field(default_factory=list)

     @property
     def summary(self) -> Dict[str, int]:
          counts = {outcome.value: 0 for outcome in ReconcileOutcome}
          for result in self.results:
               counts[result.outcome.value] += 1
          counts["TOTAL"] = len(self.results)
          return counts


class LegacyOwnershipReconciler:

     def __init__(self, db: Session, grants: Optional[GrantStore] = None, directory: Optional[PropertyDirectory] = None):
          self.db = db
          self.grants = grants or GrantStore(db)
          self.directory = directory or PropertyDirectory(db)

     def reconcile(self, property_id: int) -> ReconcileOutcome:
          """
          Idempotently derive a missing OWNER grant from landlord_id.

          Raises:
               NotFound: If the property does not exist.
               Unavailable: If storage is unreachable.
          """
          record = self.directory.get(property_id)
          legacy_owner = record.legacy_owner_id
          if legacy_owner is None:
               return ReconcileOutcome.NO_LEGACY_OWNER

          owners = [g.user_id for g in self.grants.list_for_property(property_id, status=GrantStatus.ACTIVE) if g.role == Role.OWNER]
          if legacy_owner in owners:
               return ReconcileOutcome.ALREADY_OWNED
          if owners:
               logger.warning(
                    "Legacy owner disagrees with grant table (grant table wins): property_id=%s landlord_id=%s owners=%s",
                    property_id, legacy_owner, owners,
               )
               return ReconcileOutcome.DISAGREES

          existing = self.grants.find(property_id, legacy_owner)
          with self.db.begin_nested():
               self.grants.upsert(
                    property_id,
                    legacy_owner,
                    role=Role.OWNER,
                    status=GrantStatus.ACTIVE,
                    invited_by=legacy_owner,
                    accepted_at=utcnow(),
               )
          outcome = ReconcileOutcome.PROMOTED if existing is not None else ReconcileOutcome.CREATED
          logger.info("Reconciled property_id=%s landlord_id=%s -> %s", property_id, legacy_owner, outcome.value)
          return outcome

     def reconcile_all(self) -> ReconcileReport:
          """Reconcile every property that still carries a landlord_id."""
          report = ReconcileReport()
          for record in self.directory.with_legacy_owner():
               try:
                    outcome = self.reconcile(record.id)
                    report.results.append(ReconcileResult(record.id, outcome, record.legacy_owner_id))
               except AccessControlError as e:
                    logger.error("Failed to reconcile property_id=%s: %s", record.id, e.message)
                    report.results.append(
                         ReconcileResult(record.id, ReconcileOutcome.ERROR, record.legacy_owner_id, e.message)
                    )
          logger.info("Reconciliation summary: %s", report.summary)
          return report

     def on_property_created(self, property_id: int, creator_id: int):
          """Auto-grant ACTIVE OWNER to the user who created the property."""
          self.directory.get(property_id)
          grant = self.grants.upsert(
               property_id,
               creator_id,
               role=Role.OWNER,
               status=GrantStatus.ACTIVE,
               accepted_at=utcnow(),
          )
          logger.info("Owner grant created for new property_id=%s creator=%s", property_id, creator_id)
          return grant


def main(argv=None) -> int:
     from database import get_session_context
     from logging_config import setup_logging
     from services.invitation_store import InvitationStore

     parser = argparse.ArgumentParser(description="Reconcile legacy property owners into the grant table.")
     parser.add_argument("--sweep", action="store_true", help="also mark overdue invitations INACTIVE")
     args = parser.parse_args(argv)

     setup_logging()
     with get_session_context() as db:
          report = LegacyOwnershipReconciler(db).reconcile_all()
          if args.sweep:
               expired = InvitationStore(db).expire_overdue()
               logger.info("Expired %s overdue invitation(s)", expired)
     return 1 if report.summary[ReconcileOutcome.ERROR.value] else 0


if __name__ == "__main__":
     raise SystemExit(main())
