"""
配件仓库 - Parts Repository

The narrow persistence contract used by the reconciler and the parts routes,
with an in-memory implementation and a SQLite implementation behind a bounded
connection pool.
"""

from __future__ import annotations

import itertools
import queue
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Literal, Optional

from ..errors import StorageError
from .models import Part


class PartsRepository:
    """
    配件仓库基类 - Parts Repository Base Class

    Lookup by natural key, insert, and update by id. Quantity changes go
    through adjust_quantity(), which must refuse any result below zero
    without writing.
    """

    def find_by_key(self, manufacturer: str, part: str, model: str) -> Optional[Part]:
        raise NotImplementedError

    def get(self, part_id: int) -> Optional[Part]:
        raise NotImplementedError

    def insert(self, manufacturer: str, part: str, model: str, quantity: int) -> Part:
        """Create a row, or add to the existing row if the key already exists."""
        raise NotImplementedError

    def adjust_quantity(self, part_id: int, delta: int) -> Optional[int]:
        """Return the new quantity, or None if the row is gone or would go negative."""
        raise NotImplementedError

    def update(self, part_id: int, manufacturer: str, part: str, model: str, quantity: int) -> bool:
        raise NotImplementedError

    def all_parts(self) -> List[Part]:
        raise NotImplementedError

    def delete(self, ids: Iterable[int]) -> int:
        raise NotImplementedError

    def ping(self) -> None:
        """Raise StorageError if the backing store is unreachable."""

    def close(self) -> None:
        """Release held resources."""


class InMemoryPartsRepository(PartsRepository):
    """内存仓库 - dict storage guarded by a single lock"""

    def __init__(self, parts: Iterable[Part] | None = None):
        self._lock = threading.Lock()
        self._rows: Dict[int, Part] = {}
        self._ids = itertools.count(1)
        for p in parts or []:
            self._rows[p.id] = p.model_copy()
        if self._rows:
            self._ids = itertools.count(max(self._rows) + 1)

    def _find(self, manufacturer: str, part: str, model: str) -> Optional[Part]:
        for row in self._rows.values():
            if row.key() == (manufacturer, part, model):
                return row
        return None

    def find_by_key(self, manufacturer: str, part: str, model: str) -> Optional[Part]:
        with self._lock:
            row = self._find(manufacturer, part, model)
            return row.model_copy() if row else None

    def get(self, part_id: int) -> Optional[Part]:
        with self._lock:
            row = self._rows.get(part_id)
            return row.model_copy() if row else None

    def insert(self, manufacturer: str, part: str, model: str, quantity: int) -> Part:
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        with self._lock:
            row = self._find(manufacturer, part, model)
            if row is not None:
                row.quantity += quantity
                return row.model_copy()
            row = Part(
                id=next(self._ids),
                manufacturer=manufacturer,
                part=part,
                model=model,
                quantity=quantity,
            )
            self._rows[row.id] = row
            return row.model_copy()

    def adjust_quantity(self, part_id: int, delta: int) -> Optional[int]:
        with self._lock:
            row = self._rows.get(part_id)
            if row is None or row.quantity + delta < 0:
                return None
            row.quantity += delta
            return row.quantity

    def update(self, part_id: int, manufacturer: str, part: str, model: str, quantity: int) -> bool:
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        with self._lock:
            if part_id not in self._rows:
                return False
            clash = self._find(manufacturer, part, model)
            if clash is not None and clash.id != part_id:
                raise StorageError(f"part key already used by id={clash.id}")
            self._rows[part_id] = Part(
                id=part_id,
                manufacturer=manufacturer,
                part=part,
                model=model,
                quantity=quantity,
            )
            return True

    def all_parts(self) -> List[Part]:
        with self._lock:
            return [self._rows[k].model_copy() for k in sorted(self._rows)]

    def delete(self, ids: Iterable[int]) -> int:
        with self._lock:
            removed = 0
            for part_id in set(ids):
                if self._rows.pop(part_id, None) is not None:
                    removed += 1
            return removed


class SQLitePartsRepository(PartsRepository):
    """
    SQLite 配件仓库 - SQLite Parts Repository

    Connections come from a bounded pool; when every connection is checked out
    callers wait instead of failing. Quantity changes are single guarded
    statements, so concurrent adds and removes on the same key never read a
    stale value.

    参数 Parameters:
        db_path: SQLite 数据库文件路径
                 SQLite database file path
        pool_size: 最大并发连接数
                   Maximum number of concurrent connections
    """

    ACQUIRE_POLL_SECONDS = 0.2

    def __init__(self, db_path: Path, pool_size: int = 10):
        self.db_path = Path(db_path)
        self.pool_size = max(1, int(pool_size))
        self._pool: "queue.Queue[sqlite3.Connection]" = queue.Queue(maxsize=self.pool_size)
        self._closed = False
        self._state_lock = threading.Lock()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        for _ in range(self.pool_size):
            self._pool.put(self._open())
        self._init_table()

    def _open(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                self.db_path,
                timeout=30,
                check_same_thread=False,
                isolation_level=None,
            )
        except sqlite3.Error as err:
            raise StorageError(f"cannot open {self.db_path}: {err}") from err
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self, write: bool = False) -> Iterator[sqlite3.Connection]:
        conn = self._acquire()
        try:
            # 写操作先拿写锁，等待而不是 SQLITE_BUSY
            if write:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            if conn.in_transaction:
                conn.commit()
        except sqlite3.Error as err:
            if conn.in_transaction:
                conn.rollback()
            raise StorageError(str(err)) from err
        except Exception:
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            self._release(conn)

    def _acquire(self) -> sqlite3.Connection:
        # 轮询等待，关闭后不再阻塞
        while True:
            if self._closed:
                raise StorageError("repository is closed")
            try:
                return self._pool.get(timeout=self.ACQUIRE_POLL_SECONDS)
            except queue.Empty:
                continue

    def _release(self, conn: sqlite3.Connection) -> None:
        with self._state_lock:
            if not self._closed:
                self._pool.put(conn)
                return
        conn.close()

    def _init_table(self) -> None:
        with self._connection(write=True) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS parts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    manufacturer TEXT NOT NULL,
                    part TEXT NOT NULL,
                    model TEXT NOT NULL,
                    quantity INTEGER NOT NULL DEFAULT 0 CHECK (quantity >= 0)
                )
                """
            )
            conn.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS idx_parts_natural_key
                ON parts (manufacturer, part, model)
                """
            )

    @staticmethod
    def _row_to_part(row: sqlite3.Row | None) -> Optional[Part]:
        return Part.model_validate(dict(row)) if row is not None else None

    def find_by_key(self, manufacturer: str, part: str, model: str) -> Optional[Part]:
        with self._connection() as conn:
            row = conn.execute(
                """
                SELECT id, manufacturer, part, model, quantity
                FROM parts
                WHERE manufacturer = ? AND part = ? AND model = ?
                """,
                (manufacturer, part, model),
            ).fetchone()
        return self._row_to_part(row)

    def get(self, part_id: int) -> Optional[Part]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT id, manufacturer, part, model, quantity FROM parts WHERE id = ?",
                (part_id,),
            ).fetchone()
        return self._row_to_part(row)

    def insert(self, manufacturer: str, part: str, model: str, quantity: int) -> Part:
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        with self._connection(write=True) as conn:
            # 并发插入同一键时折叠为增量
            conn.execute(
                """
                INSERT INTO parts (manufacturer, part, model, quantity)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (manufacturer, part, model)
                DO UPDATE SET quantity = quantity + excluded.quantity
                """,
                (manufacturer, part, model, quantity),
            )
            row = conn.execute(
                """
                SELECT id, manufacturer, part, model, quantity
                FROM parts
                WHERE manufacturer = ? AND part = ? AND model = ?
                """,
                (manufacturer, part, model),
            ).fetchone()
        return self._row_to_part(row)

    def adjust_quantity(self, part_id: int, delta: int) -> Optional[int]:
        with self._connection(write=True) as conn:
            cur = conn.execute(
                "UPDATE parts SET quantity = quantity + ? WHERE id = ? AND quantity + ? >= 0",
                (delta, part_id, delta),
            )
            if cur.rowcount == 0:
                return None
            row = conn.execute("SELECT quantity FROM parts WHERE id = ?", (part_id,)).fetchone()
        return int(row["quantity"])

    def update(self, part_id: int, manufacturer: str, part: str, model: str, quantity: int) -> bool:
        if quantity < 0:
            raise ValueError("quantity must be >= 0")
        with self._connection(write=True) as conn:
            cur = conn.execute(
                """
                UPDATE parts
                SET manufacturer = ?, part = ?, model = ?, quantity = ?
                WHERE id = ?
                """,
                (manufacturer, part, model, quantity, part_id),
            )
            return cur.rowcount > 0

    def all_parts(self) -> List[Part]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT id, manufacturer, part, model, quantity FROM parts ORDER BY id"
            ).fetchall()
        return [Part.model_validate(dict(r)) for r in rows]

    def delete(self, ids: Iterable[int]) -> int:
        ids = sorted({int(i) for i in ids})
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        with self._connection(write=True) as conn:
            cur = conn.execute(f"DELETE FROM parts WHERE id IN ({placeholders})", tuple(ids))
            return cur.rowcount

    def ping(self) -> None:
        with self._connection() as conn:
            conn.execute("SELECT 1").fetchone()

    def close(self) -> None:
        # 借出中的连接在归还时关闭
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            idle = []
            while True:
                try:
                    idle.append(self._pool.get_nowait())
                except queue.Empty:
                    break
        for conn in idle:
            conn.close()


def create_parts_repository(
    store: Literal["sqlite", "memory"],
    db_path: Path | None = None,
    pool_size: int = 10,
) -> PartsRepository:
    if store == "memory":
        return InMemoryPartsRepository()
    if db_path is None:
        raise ValueError("PARTS_STORE=sqlite requires a database path.")
    return SQLitePartsRepository(db_path, pool_size=pool_size)
