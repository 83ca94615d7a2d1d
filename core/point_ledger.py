"""
Point Ledger：隊伍分數與參與者分數

兩個 ledger 形狀完全相同，只差在 key 的欄位：
- TeamPointLedger：points 紀錄以 team_id 為 key
- ParticipantPointLedger：points 紀錄以 participant_id 為 key，
  寫入前確保參與者身份紀錄存在（find-or-create）

並發：
- 同一個 key 的「讀 cache → upsert → 更新 cache」在 KeyedLock 內完成，
  兩個同時的 add_points(team, +5) 不會遺失任何一次更新
- 不同 key 之間不互相阻塞
- reset_all 取得 exclusive 鎖，等所有進行中的寫入結束後才執行

失敗處理：store 寫入失敗只記 log，記憶體保持舊值；add_points 返回舊值，
set_points / reset_all 返回 False，永遠不拋出異常。
"""
import logging
import threading
from typing import Any, Dict, Hashable, Set

from core.exceptions import PersistenceFailure
from core.locks import KeyedLock, SharedExclusiveLock
from core.persistence import write_through
from core.team import PARTICIPANTS, POINTS, participant_key, utc_now
from storage.base import PersistentStore

logger = logging.getLogger(__name__)


class PointLedger:
    """單一範圍（隊伍或參與者）的分數 write-through cache"""

    key_field = ""
    scope = ""

    def __init__(self, store: PersistentStore) -> None:
        self._store = store
        self._key_locks = KeyedLock()
        self._bulk_lock = SharedExclusiveLock()
        self._state_lock = threading.Lock()
        self._balances: Dict[Hashable, int] = {}

    def normalize_key(self, key: Any) -> Hashable:
        raise NotImplementedError

    def _prepare(self, key: Hashable) -> bool:
        """寫入分數前的前置步驟，子類別可覆寫"""
        return True

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        從 store 載入這個範圍的所有分數紀錄

        異常：
            PersistenceFailure: store 讀取失敗
        """
        balances: Dict[Hashable, int] = {}
        for record in self._store.find(POINTS, {self.key_field: {"$ne": None}}):
            balances[self.normalize_key(record[self.key_field])] = int(record.get("balance") or 0)

        with self._state_lock:
            self._balances = balances

        logger.info(f"Loaded {len(balances)} {self.scope} balances")

    # ------------------------------------------------------------------
    # Queries（純記憶體讀取，永遠不失敗）
    # ------------------------------------------------------------------

    def get_points(self, key: Any) -> int:
        key = self.normalize_key(key)
        with self._state_lock:
            return self._balances.get(key, 0)

    def get_all_balances(self) -> Dict[Hashable, int]:
        with self._state_lock:
            return dict(self._balances)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_points(self, key: Any, delta: int) -> int:
        """
        增加分數（delta 可為負數，沒有下限）

        流程：
        1. 取得該 key 的鎖
        2. 讀取目前餘額（預設 0），計算 current + delta
        3. upsert 到 store
        4. 成功才更新記憶體

        返回：
            新的餘額；store 寫入失敗時返回原本的餘額
        """
        key = self.normalize_key(key)
        delta = int(delta)

        with self._bulk_lock.shared(), self._key_locks.hold(key):
            with self._state_lock:
                current = self._balances.get(key, 0)
            new_balance = current + delta

            if not self._persist_balance("add_points", key, new_balance):
                return current

            with self._state_lock:
                self._balances[key] = new_balance

        logger.debug(f"{self.scope} {key}: {current} -> {new_balance} ({delta:+d})")
        return new_balance

    def remove_points(self, key: Any, delta: int) -> int:
        return self.add_points(key, -int(delta))

    def set_points(self, key: Any, value: int) -> bool:
        """
        直接覆寫餘額（upsert）

        返回：
            True 如果 store 寫入成功並已更新記憶體，False 否則
        """
        key = self.normalize_key(key)
        value = int(value)

        with self._bulk_lock.shared(), self._key_locks.hold(key):
            if not self._persist_balance("set_points", key, value):
                return False

            with self._state_lock:
                self._balances[key] = value

        logger.info(f"Set {self.scope} {key} balance to {value}")
        return True

    def clear(self, key: Any) -> bool:
        """刪除單一 key 的分數紀錄（之後 get_points 返回 0）"""
        key = self.normalize_key(key)

        with self._bulk_lock.shared(), self._key_locks.hold(key):
            ok = write_through(
                f"clear_{self.scope}_points", key,
                lambda: self._store.delete_one(POINTS, {self.key_field: key})
            )
            if not ok:
                return False

            with self._state_lock:
                self._balances.pop(key, None)
        return True

    def reset_all(self) -> bool:
        """
        清除這個範圍的所有分數

        一次 delete_many 刪除 store 中所有紀錄，成功才清空記憶體；
        失敗時記憶體不變。另一個範圍的分數不受影響。
        """
        with self._bulk_lock.exclusive():
            ok = write_through(
                f"reset_{self.scope}_points", "*",
                lambda: self._store.delete_many(POINTS, {self.key_field: {"$ne": None}})
            )
            if not ok:
                return False

            with self._state_lock:
                count = len(self._balances)
                self._balances.clear()

        logger.info(f"Reset {count} {self.scope} balances")
        return True

    def _persist_balance(self, operation: str, key: Hashable, balance: int) -> bool:
        if not self._prepare(key):
            logger.error(f"{operation} aborted for {self.scope} {key}: identity record unavailable")
            return False

        fields = {"balance": balance, "last_updated": utc_now()}
        return write_through(
            f"{operation}[{self.scope}]", key,
            lambda: self._store.upsert_one(POINTS, {self.key_field: key}, fields)
        )


class TeamPointLedger(PointLedger):
    key_field = "team_id"
    scope = "team"

    def normalize_key(self, key: Any) -> int:
        return int(key)


class ParticipantPointLedger(PointLedger):
    key_field = "participant_id"
    scope = "participant"

    def __init__(self, store: PersistentStore) -> None:
        super().__init__(store)
        self._known: Set[str] = set()
        self._known_lock = threading.Lock()

    def normalize_key(self, key: Any) -> str:
        return participant_key(key)

    def _prepare(self, key: Hashable) -> bool:
        """
        確保參與者身份紀錄存在（find-or-create）

        分數可能在參與者加入任何隊伍之前就被記錄，因此不能假設
        TeamDirectory 已經建立過這個參與者。
        """
        with self._known_lock:
            if key in self._known:
                return True

        try:
            existing = self._store.find_one(PARTICIPANTS, {"participant_id": key})
        except PersistenceFailure as e:
            logger.error(f"Participant lookup failed for {key}: {e}")
            return False

        if existing is None:
            # upsert 而非 insert：TeamDirectory 可能同時建立同一個參與者
            ok = write_through(
                "create_participant", key,
                lambda: self._store.upsert_one(PARTICIPANTS, {"participant_id": key}, {})
            )
            if not ok:
                return False
            logger.info(f"Created participant record for {key}")

        with self._known_lock:
            self._known.add(key)
        return True
