import enum
from dataclasses import dataclass
from typing import Dict, Optional, Protocol


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class RoleStore(Protocol):
    def load(self, wallet: str) -> Optional[Role]:
        ...

    def store(self, wallet: str, role: Role) -> None:
        ...


class MemoryRoleStore:
    def __init__(self) -> None:
        self._roles: Dict[str, Role] = {}

    def load(self, wallet: str) -> Optional[Role]:
        return self._roles.get(wallet.lower())

    def store(self, wallet: str, role: Role) -> None:
        self._roles[wallet.lower()] = role


@dataclass
class Session:
    """Who is acting: the connected wallet and the role it picked."""

    address: Optional[str] = None
    role: Optional[Role] = None

    @property
    def connected(self) -> bool:
        return bool(self.address)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def needs_role(self) -> bool:
        return self.connected and self.role is None

    @classmethod
    def connect(cls, address: str, roles: RoleStore) -> "Session":
        return cls(address=address, role=roles.load(address))

    def select_role(self, role: Role, roles: RoleStore) -> None:
        if not self.address:
            raise ValueError("cannot select a role without a connected wallet")
        roles.store(self.address, role)
        self.role = role
