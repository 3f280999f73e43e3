"""Caller identity passed explicitly into every service call."""

from dataclasses import dataclass

from ..errors import Forbidden


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, resolved from the bearer token."""

    user_id: int
    username: str | None = None


def ensure_owner(principal: Principal, user_id: int) -> None:
    """Raise Forbidden unless the caller is ``user_id``."""
    if principal.user_id != user_id:
        raise Forbidden()
