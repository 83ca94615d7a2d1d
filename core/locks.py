"""
並發控制工具

兩層鎖定機制，防止競態條件（Race Condition）：

1. Process 內：KeyedLock，每個 key 一把 threading.Lock，
   讓「讀 cache → 寫 store → 更新 cache」成為原子操作（避免 lost update）
2. Database 內：SELECT ... FOR UPDATE 悲觀鎖，讓 SqlStore 的 upsert
   在 transaction 期間不被其他連線修改
"""
import threading
from contextlib import contextmanager
from typing import Any, Dict, Hashable, Iterator

from sqlalchemy.orm import Session, Query


class KeyedLock:
    """
    每個 key 一把鎖

    使用場景：
    - PointLedger.add_points：同一個 key 的 read-modify-write 必須序列化
    - 不同 key 之間不互相阻塞

    範例：
        locks = KeyedLock()
        with locks.hold(team_id):
            current = balances.get(team_id, 0)
            ...

    注意：
        - 鎖物件建立後不會被回收（key 數量很少：隊伍數十、參與者數百）
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock:
            yield


def with_record_lock(model: Any, filters: list, db: Session) -> Query:
    """
    鎖定符合條件的資料列（行級鎖）

    使用場景：
    - upsert 時先鎖定既有資料列，再決定 UPDATE 或 INSERT

    範例：
        row = with_record_lock(PointsRecord, [PointsRecord.team_id == 3], db).first()
        if row is None:
            db.add(PointsRecord(team_id=3, balance=10))
        else:
            row.balance = 10

    參數：
        model: ORM model class
        filters: SQLAlchemy 條件列表
        db: SQLAlchemy Session

    返回：
        Query object（需要呼叫 .first() 或 .all() 來取得結果）

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - SQLite 會忽略 FOR UPDATE（整個資料庫只有一個 writer）
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(model).filter(*filters).with_for_update(nowait=False)


class SharedExclusiveLock:
    """
    讀寫鎖（shared / exclusive）

    使用場景：
    - 一般的分數寫入取得 shared（不同 key 可以並行）
    - reset_all 取得 exclusive（等所有進行中的寫入結束，期間不允許新的寫入）

    等待中的 exclusive 優先，避免 reset 被持續的寫入餓死。
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def shared(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()
