# dependencies.py
"""
FastAPI dependencies shared by the routers: bearer-token auth and the
request-scoped access services.
"""
from fastapi import Depends, HTTPException, Request
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from config import JWT_ALGORITHM, JWT_SECRET
from database import get_session
from services.access_cache import access_cache
from services.authorization import AuthorizationEngine
from services.boundary import AccessBoundary
from services.grant_store import GrantStore
from services.invitation_workflow import InvitationWorkflow
from services.membership_service import MembershipService
from services.reconciler import LegacyOwnershipReconciler


# Token Auth Dependency
def verify_token(request: Request) -> dict:
     auth = request.headers.get("Authorization")
     if not auth or not auth.startswith("Bearer "):
          raise HTTPException(status_code=401, detail="Missing token")
     token = auth.split(" ", 1)[1]
     try:
          return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
     except JWTError:
          raise HTTPException(status_code=403, detail="Invalid token")


def get_current_user_id(token: dict = Depends(verify_token)) -> int:
     user_id = token.get("id")
     if user_id is None:
          raise HTTPException(status_code=403, detail="Invalid token")
     try:
          return int(user_id)
     except (TypeError, ValueError):
          raise HTTPException(status_code=403, detail="Invalid token")


def get_reconciler(db: Session = Depends(get_session)) -> LegacyOwnershipReconciler:
     return LegacyOwnershipReconciler(db, grants=GrantStore(db, cache=access_cache))


def get_engine(
     db: Session = Depends(get_session),
     reconciler: LegacyOwnershipReconciler = Depends(get_reconciler),
) -> AuthorizationEngine:
     return AuthorizationEngine(
          db,
          grants=reconciler.grants,
          directory=reconciler.directory,
          cache=access_cache,
          reconciler=reconciler,
     )


def get_workflow(
     db: Session = Depends(get_session),
     engine: AuthorizationEngine = Depends(get_engine),
) -> InvitationWorkflow:
     return InvitationWorkflow(db, engine)


def get_membership(
     db: Session = Depends(get_session),
     engine: AuthorizationEngine = Depends(get_engine),
) -> MembershipService:
     return MembershipService(db, engine)


def get_boundary(
     db: Session = Depends(get_session),
     engine: AuthorizationEngine = Depends(get_engine),
     user_id: int = Depends(get_current_user_id),
) -> AccessBoundary:
     return AccessBoundary(db, user_id, engine)
