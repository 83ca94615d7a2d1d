"""
In-memory document store

Schemaless collections（list of dict），所有操作在同一把 Lock 下執行：
- upsert 的 find-then-branch 不會被其他寫入插隊
- delete_many 在一次鎖定內完成（store 層級原子）

回傳的 record 都是複本，呼叫者修改不會影響 store 內部資料。
"""
import logging
import threading
from typing import Dict, List, Optional

from storage.base import Filter, PersistentStore, Record, matches

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(PersistentStore):

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._collections: Dict[str, List[Record]] = {}

    def _collection(self, name: str) -> List[Record]:
        return self._collections.setdefault(name, [])

    def find(self, collection: str, filter: Filter) -> List[Record]:
        with self._lock:
            return [dict(doc) for doc in self._collection(collection) if matches(doc, filter)]

    def find_one(self, collection: str, filter: Filter) -> Optional[Record]:
        with self._lock:
            for doc in self._collection(collection):
                if matches(doc, filter):
                    return dict(doc)
            return None

    def insert_one(self, collection: str, record: Record) -> bool:
        with self._lock:
            self._collection(collection).append(dict(record))
        return True

    def update_one(self, collection: str, filter: Filter, fields: Record) -> bool:
        with self._lock:
            for doc in self._collection(collection):
                if matches(doc, filter):
                    doc.update(fields)
                    break
        # 與 MongoDB 相同：沒有符合的文件也算成功（matched_count == 0）
        return True

    def upsert_one(self, collection: str, filter: Filter, fields: Record) -> bool:
        with self._lock:
            docs = self._collection(collection)
            for doc in docs:
                if matches(doc, filter):
                    doc.update(fields)
                    return True

            new_doc = {k: v for k, v in filter.items() if not isinstance(v, dict)}
            new_doc.update(fields)
            docs.append(new_doc)
            return True

    def delete_one(self, collection: str, filter: Filter) -> bool:
        with self._lock:
            docs = self._collection(collection)
            for i, doc in enumerate(docs):
                if matches(doc, filter):
                    del docs[i]
                    break
        return True

    def delete_many(self, collection: str, filter: Filter) -> bool:
        with self._lock:
            docs = self._collection(collection)
            kept = [doc for doc in docs if not matches(doc, filter)]
            removed = len(docs) - len(kept)
            docs[:] = kept
        logger.debug(f"Deleted {removed} documents from '{collection}'")
        return True
