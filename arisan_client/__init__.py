"""Client-side orchestration and reconciliation for the arisan rotating-savings protocol."""

from .cache import CacheStore
from .decoder import EventDecoder
from .errors import ErrorKind
from .history import HistoryAggregator
from .models import CacheGroupRecord, EventRecord, EventType, Group, GroupStatus, Participant
from .orchestrator import CreateGroupResult, FlowResult, TransactionOrchestrator, WinnerResult
from .reader import ChainReader
from .reconciler import merge_groups, merge_user_groups
from .service import ArisanService
from .session import MemoryRoleStore, Role, Session
from .signer import TransactionSender
from .watcher import GroupWatcher, Ticker

__version__ = "0.1.0"
