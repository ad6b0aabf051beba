import enum
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence


class GroupStatus(str, enum.Enum):
    OPEN = "OPEN"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class EventType(str, enum.Enum):
    JOINED = "JOINED"
    WINNER = "WINNER"
    CLAIMED = "CLAIMED"


@dataclass(frozen=True)
class Participant:
    wallet_address: str
    has_paid: bool = False
    has_won: bool = False
    joined_at: int = 0

    @classmethod
    def from_tuple(cls, raw: Sequence[Any]) -> "Participant":
        """Decode one `getParticipants` tuple: (walletAddress, hasPaid, hasWon, joinedAt)."""
        wallet, has_paid, has_won, joined_at = raw
        return cls(
            wallet_address=str(wallet),
            has_paid=bool(has_paid),
            has_won=bool(has_won),
            joined_at=int(joined_at),
        )


@dataclass(frozen=True)
class Group:
    address: str
    name: str
    description: str = ""
    entry_fee: Decimal = Decimal(0)
    entry_fee_raw: int = 0
    currency: str = "USDT"
    cycle_period: str = "Weekly"
    max_participants: int = 0
    current_cycle: int = 1
    status: str = GroupStatus.OPEN.value
    pool_balance: Decimal = Decimal(0)
    created_at: str = ""
    owner: Optional[str] = None
    participants: List[Participant] = field(default_factory=list)
    indexed: bool = True

    @property
    def key(self) -> str:
        return self.address.lower()

    @property
    def winners(self) -> List[str]:
        return [p.wallet_address for p in self.participants if p.has_won]

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= self.max_participants

    def has_participant(self, wallet: str) -> bool:
        wallet = wallet.lower()
        return any(p.wallet_address.lower() == wallet for p in self.participants)

    def with_status(self, status: str) -> "Group":
        return replace(self, status=status)


@dataclass(frozen=True)
class EventRecord:
    type: EventType
    participant: str
    amount: int
    block_number: int
    transaction_hash: str
    log_index: int = 0
    timestamp: int = 0


@dataclass(frozen=True)
class DecodedEvent:
    name: str
    args: Dict[str, Any]
    log: Dict[str, Any]


@dataclass
class CacheGroupRecord:
    contract_address: str
    name: str = ""
    description: str = ""
    status: str = GroupStatus.OPEN.value
    created_by: str = ""
    max_participants: Optional[int] = None
    entry_fee: Optional[str] = None
    duration: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def key(self) -> str:
        return self.contract_address.lower()


@dataclass
class WinnerRecord:
    group_id: str
    winner_address: str
    cycle_number: int
    prize_amount: str
    tx_hash: str
    created_at: Optional[str] = None


@dataclass
class UserProfile:
    wallet_address: str
    username: str = ""
    avatar_url: str = ""
    reputation_score: int = 100


@dataclass
class ActivityEntry:
    group_name: str
    winner: str
    amount: str
    date: str
    tx_hash: str
