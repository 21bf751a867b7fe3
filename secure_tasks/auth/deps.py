from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from secure_tasks.auth.tokens import decode_access_token
from secure_tasks.db import get_db
from secure_tasks.errors import Unauthorized
from secure_tasks.models.user import User
from secure_tasks.rbac.principal import Principal

bearer = HTTPBearer(auto_error=False)

def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None or creds.scheme.lower() != "bearer":
        raise Unauthorized("missing bearer token")

    try:
        payload = decode_access_token(creds.credentials)
        user_id = int(payload["sub"])
    except Exception:
        raise Unauthorized("invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise Unauthorized("user not found")

    return user

def get_current_principal(request: Request, user: User = Depends(get_current_user)) -> Principal:
    # role and org come from the stored user so promotions apply immediately
    principal = Principal(
        user_id=user.id,
        role=user.role,
        organization_id=user.organization_id,
        email=user.email,
    )
    # read back by the audit middleware after the response
    request.state.principal = principal
    return principal
