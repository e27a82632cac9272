import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rendezvous.auth import jwt_handler
from rendezvous.database import get_db
from rendezvous.models.user import ROLE_ADMIN, Profile

security = HTTPBearer(auto_error=False)


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """Return the caller's user id from the bearer token."""
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    return subject


def get_current_profile(
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
) -> Profile:
    try:
        profile = db.query(Profile).filter(Profile.id == identity).first()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable. Verify DATABASE_URL.",
        ) from exc
    if profile is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return profile


def is_admin(profile: Profile | None) -> bool:
    return profile is not None and (profile.role or "").strip().lower() == ROLE_ADMIN


def require_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if not is_admin(profile):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return profile
