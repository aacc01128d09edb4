"""FastAPI dependencies: container access and the authenticated caller."""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from prototyper.api.security import InvalidTokenError, read_token_subject
from prototyper.container import Container
from prototyper.database.models import User

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    container: Container = Depends(get_container),
) -> User:
    """Resolve the caller from the bearer token or answer 401."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        user_id = read_token_subject(credentials.credentials, container.settings)
    except InvalidTokenError as e:
        logger.info(f"Rejected bearer token: {e}")
        raise HTTPException(status_code=401, detail="Authentication required") from e

    user = await container.users.find_by_id(user_id)
    if user is None:
        logger.info(f"Token references unknown user {user_id}")
        raise HTTPException(status_code=401, detail="Authentication required")

    return user
