from functools import wraps
from typing import Any, Callable, TypeVar

from flask import g, request

from opschat.core.exceptions import UnauthorizedError
from opschat.entities.user import Actor
from opschat.infrastructure.security.jwt_provider import JwtProvider
from opschat.repositories.user_repository import UserRepository

F = TypeVar("F", bound=Callable[..., Any])


def _get_bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    raise UnauthorizedError("Missing token.")


def require_auth(fn: F) -> F:
    @wraps(fn)
    def wrapper(*args, **kwargs):
        token = _get_bearer_token()
        claims = JwtProvider().decode(token)

        if claims.get("typ") != "access":
            raise UnauthorizedError("Invalid token.")

        try:
            int(claims["sub"])
        except (TypeError, ValueError) as e:
            raise UnauthorizedError("Invalid token.") from e

        g.auth = claims
        return fn(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def load_actor(session) -> Actor:
    """Resolve the token subject to an active user inside the request session."""
    auth = getattr(g, "auth", None)
    if not auth:
        raise UnauthorizedError()

    ref = UserRepository(session).get_ref(int(auth["sub"]))
    if ref is None:
        raise UnauthorizedError()
    return Actor(id=ref.id, role=ref.role, client_id=ref.client_id)
