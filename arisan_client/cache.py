"""Off-chain mirror of group metadata, joins, winners and user profiles.

The mirror is written after on-chain confirmation and read back by the
dashboards; it is never authoritative for balances or membership. Every
method swallows storage errors after logging them so a broken cache degrades
views instead of failing a flow.
"""

import asyncio
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import ActivityEntry, CacheGroupRecord, GroupStatus, UserProfile, WinnerRecord
from .util import _db_addr, _log


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def default_avatar(wallet: str) -> str:
    return f"https://api.dicebear.com/7.x/avataaars/svg?seed={wallet}"


class CacheStore:
    def __init__(self, db_path: str = "./arisan_cache.db"):
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None
        self.db_lock = asyncio.Lock()

    async def init_db(self) -> None:
        if self.conn is not None:
            return
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            self._create_schema(conn)
        except sqlite3.Error:
            conn.close()
            raise
        self.conn = conn

    @staticmethod
    def _create_schema(conn: sqlite3.Connection) -> None:
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS arisan_groups (
                contract_address TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT,
                status TEXT NOT NULL,
                created_by TEXT,
                max_participants INTEGER,
                entry_fee TEXT,
                duration TEXT,
                created_at TEXT
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_groups_creator ON arisan_groups(created_by)")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS arisan_participants (
                group_id TEXT NOT NULL,
                wallet_address TEXT NOT NULL,
                joined_at TEXT,
                status TEXT,
                PRIMARY KEY (group_id, wallet_address)
            )
            """
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_participants_wallet ON arisan_participants(wallet_address)"
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS winners (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                group_id TEXT NOT NULL,
                winner_address TEXT NOT NULL,
                cycle_number INTEGER,
                prize_amount TEXT,
                tx_hash TEXT,
                created_at TEXT
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_winners_group ON winners(group_id)")
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                wallet_address TEXT PRIMARY KEY,
                username TEXT,
                avatar_url TEXT,
                reputation_score INTEGER DEFAULT 100,
                updated_at TEXT
            )
            """
        )
        conn.commit()

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    async def _write(self, sql: str, params: tuple) -> bool:
        async with self.db_lock:
            try:
                await self.init_db()
                self.conn.execute(sql, params)
                self.conn.commit()
                return True
            except sqlite3.Error as exc:
                if self.conn is not None:
                    self.conn.rollback()
                _log(f"Cache write failed: {exc}")
                return False

    async def _read(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            await self.init_db()
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            _log(f"Cache read failed: {exc}")
            return []

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------
    async def upsert_group(self, record: CacheGroupRecord) -> bool:
        return await self._write(
            """
            INSERT INTO arisan_groups (
                contract_address, name, description, status, created_by,
                max_participants, entry_fee, duration, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(contract_address) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                status = excluded.status,
                created_by = excluded.created_by,
                max_participants = excluded.max_participants,
                entry_fee = excluded.entry_fee,
                duration = excluded.duration
            """,
            (
                _db_addr(record.contract_address),
                record.name,
                record.description,
                record.status,
                _db_addr(record.created_by) if record.created_by else None,
                record.max_participants,
                record.entry_fee,
                record.duration,
                record.created_at or _now(),
            ),
        )

    async def set_group_status(self, contract_address: str, status: str) -> bool:
        return await self._write(
            "UPDATE arisan_groups SET status = ? WHERE contract_address = ?",
            (status, _db_addr(contract_address)),
        )

    async def all_groups(self) -> List[CacheGroupRecord]:
        rows = await self._read("SELECT * FROM arisan_groups ORDER BY created_at DESC")
        return [self._group_from_row(row) for row in rows]

    async def groups_by_creator(self, wallet: str) -> List[CacheGroupRecord]:
        rows = await self._read(
            "SELECT * FROM arisan_groups WHERE created_by = ? ORDER BY created_at DESC",
            (_db_addr(wallet),),
        )
        return [self._group_from_row(row) for row in rows]

    async def groups_by_participant(self, wallet: str) -> List[CacheGroupRecord]:
        rows = await self._read(
            """
            SELECT g.* FROM arisan_groups g
            JOIN arisan_participants p ON p.group_id = g.contract_address
            WHERE p.wallet_address = ?
            ORDER BY g.created_at DESC
            """,
            (_db_addr(wallet),),
        )
        return [self._group_from_row(row) for row in rows]

    @staticmethod
    def _group_from_row(row: sqlite3.Row) -> CacheGroupRecord:
        return CacheGroupRecord(
            contract_address=row["contract_address"],
            name=row["name"],
            description=row["description"] or "",
            status=row["status"] or GroupStatus.OPEN.value,
            created_by=row["created_by"] or "",
            max_participants=row["max_participants"],
            entry_fee=row["entry_fee"],
            duration=row["duration"],
            created_at=row["created_at"],
        )

    # ------------------------------------------------------------------
    # Participants and winners
    # ------------------------------------------------------------------
    async def upsert_participant(self, group_id: str, wallet: str) -> bool:
        return await self._write(
            """
            INSERT INTO arisan_participants (group_id, wallet_address, joined_at, status)
            VALUES (?, ?, ?, 'ACTIVE')
            ON CONFLICT(group_id, wallet_address) DO UPDATE SET
                joined_at = excluded.joined_at,
                status = excluded.status
            """,
            (_db_addr(group_id), _db_addr(wallet), _now()),
        )

    async def insert_winner(self, record: WinnerRecord) -> bool:
        return await self._write(
            """
            INSERT INTO winners (group_id, winner_address, cycle_number, prize_amount, tx_hash, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                _db_addr(record.group_id),
                _db_addr(record.winner_address),
                record.cycle_number,
                record.prize_amount,
                record.tx_hash,
                record.created_at or _now(),
            ),
        )

    async def group_winners(self, group_id: str) -> List[WinnerRecord]:
        rows = await self._read(
            "SELECT * FROM winners WHERE group_id = ? ORDER BY cycle_number ASC, id ASC",
            (_db_addr(group_id),),
        )
        return [
            WinnerRecord(
                group_id=row["group_id"],
                winner_address=row["winner_address"],
                cycle_number=row["cycle_number"],
                prize_amount=row["prize_amount"],
                tx_hash=row["tx_hash"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    async def recent_activity(self, limit: int = 10) -> List[ActivityEntry]:
        rows = await self._read(
            """
            SELECT w.group_id, w.winner_address, w.prize_amount, w.tx_hash, w.created_at,
                   u.username AS username, g.name AS group_name
            FROM winners w
            LEFT JOIN users u ON u.wallet_address = w.winner_address
            LEFT JOIN arisan_groups g ON g.contract_address = w.group_id
            ORDER BY w.created_at DESC, w.id DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [
            ActivityEntry(
                group_name=row["group_name"] or row["group_id"][:8] + "...",
                winner=row["username"] or row["winner_address"],
                amount=row["prize_amount"],
                date=(row["created_at"] or "")[:10],
                tx_hash=row["tx_hash"],
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------
    async def upsert_user(
        self,
        wallet: str,
        username: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> bool:
        return await self._write(
            """
            INSERT INTO users (wallet_address, username, avatar_url, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(wallet_address) DO UPDATE SET
                username = excluded.username,
                avatar_url = excluded.avatar_url,
                updated_at = excluded.updated_at
            """,
            (
                _db_addr(wallet),
                username or f"User {wallet[:6]}",
                avatar_url or default_avatar(wallet),
                _now(),
            ),
        )

    async def get_user(self, wallet: str) -> Optional[UserProfile]:
        rows = await self._read("SELECT * FROM users WHERE wallet_address = ?", (_db_addr(wallet),))
        if not rows:
            return None
        row = rows[0]
        return UserProfile(
            wallet_address=row["wallet_address"],
            username=row["username"] or "",
            avatar_url=row["avatar_url"] or "",
            reputation_score=row["reputation_score"] if row["reputation_score"] is not None else 100,
        )

    async def admin_stats(self) -> Dict[str, Any]:
        users = await self._read("SELECT COUNT(*) AS n FROM users")
        winners = await self._read("SELECT COUNT(*) AS n FROM winners")
        return {
            "total_users": users[0]["n"] if users else 0,
            "total_winners": winners[0]["n"] if winners else 0,
        }
