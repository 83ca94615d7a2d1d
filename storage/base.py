"""
Persistent Store Adapter contract

Core 只透過這個介面存取儲存層，關聯式（SqlStore）與 document（InMemoryDocumentStore）
兩種後端對 core 而言完全相同。

Filter 格式（document 風格）：
    {"team_id": 3}                    等於
    {"team_id": None}                 IS NULL
    {"team_id": {"$ne": None}}        不等於
    {"participant_id": {"$in": [...]}} 包含於

寫入操作回傳 bool；讀取操作失敗時拋出 PersistenceFailure。
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

Record = Dict[str, Any]
Filter = Dict[str, Any]

SUPPORTED_OPERATORS = ("$ne", "$in")


class PersistentStore(ABC):

    @abstractmethod
    def find(self, collection: str, filter: Filter) -> List[Record]:
        ...

    @abstractmethod
    def find_one(self, collection: str, filter: Filter) -> Optional[Record]:
        ...

    @abstractmethod
    def insert_one(self, collection: str, record: Record) -> bool:
        ...

    @abstractmethod
    def update_one(self, collection: str, filter: Filter, fields: Record) -> bool:
        ...

    @abstractmethod
    def upsert_one(self, collection: str, filter: Filter, fields: Record) -> bool:
        """
        更新第一筆符合 filter 的紀錄，沒有的話插入 filter + fields

        對呼叫者而言是單一操作，後端內部怎麼完成由後端自己決定。
        """

    @abstractmethod
    def delete_one(self, collection: str, filter: Filter) -> bool:
        ...

    @abstractmethod
    def delete_many(self, collection: str, filter: Filter) -> bool:
        ...

    def close(self) -> None:
        pass


def matches(record: Record, filter: Filter) -> bool:
    """
    用 document 風格的 filter 比對一筆紀錄

    異常：
        ValueError: 不支援的 operator
    """
    for field, condition in filter.items():
        value = record.get(field)
        if isinstance(condition, dict):
            for op, operand in condition.items():
                if op == "$ne":
                    if value == operand:
                        return False
                elif op == "$in":
                    if value not in operand:
                        return False
                else:
                    raise ValueError(f"Unsupported filter operator: {op}")
        elif value != condition:
            return False
    return True
