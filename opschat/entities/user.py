# opschat/entities/user.py
from dataclasses import dataclass
from typing import Optional

from opschat.core.roles import normalize_role


@dataclass(frozen=True)
class Actor:
    """The resolved identity a request runs as."""

    id: int
    role: str
    client_id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", normalize_role(self.role))


@dataclass(frozen=True)
class UserRef:
    id: int
    role: str
    client_id: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", normalize_role(self.role))
