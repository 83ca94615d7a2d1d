"""
Relational store（SQLAlchemy）

把 document 風格的 find/insert/update/delete 呼叫翻譯成 ORM 查詢：
- collection 名稱對應 models.COLLECTIONS 裡的 ORM model
- filter dict 翻譯成 SQLAlchemy 條件
- 每個寫入操作都是一個 @transactional 函式（自動 commit/rollback）

upsert 語意：SELECT ... FOR UPDATE 鎖定既有資料列，再決定 UPDATE 或 INSERT，
兩者在同一個 transaction 內完成。
"""
import logging
from typing import Any, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import PersistenceFailure
from core.locks import with_record_lock
from database import Base, build_session_factory, transactional
from models import COLLECTIONS
from storage.base import Filter, PersistentStore, Record

logger = logging.getLogger(__name__)


def _conditions(model: Any, filter: Filter) -> list:
    """把 document filter 翻譯成 SQLAlchemy 條件列表"""
    conditions = []
    for field, condition in filter.items():
        column = getattr(model, field)
        if isinstance(condition, dict):
            for op, operand in condition.items():
                if op == "$ne":
                    if operand is None:
                        conditions.append(column.isnot(None))
                    else:
                        # document 語意：NULL 也算「不等於」
                        conditions.append(or_(column != operand, column.is_(None)))
                elif op == "$in":
                    conditions.append(column.in_(list(operand)))
                else:
                    raise ValueError(f"Unsupported filter operator: {op}")
        elif condition is None:
            conditions.append(column.is_(None))
        else:
            conditions.append(column == condition)
    return conditions


def _to_record(model: Any, row: Any) -> Record:
    return {column.name: getattr(row, column.name) for column in model.__table__.columns}


@transactional
def _insert(db: Session, model: Any, record: Record) -> None:
    db.add(model(**record))


@transactional
def _update(db: Session, model: Any, conditions: list, fields: Record) -> None:
    row = with_record_lock(model, conditions, db).first()
    if row is None:
        return
    for name, value in fields.items():
        setattr(row, name, value)


@transactional
def _upsert(db: Session, model: Any, filter: Filter, fields: Record) -> None:
    # 1. 鎖定既有資料列（若存在）
    row = with_record_lock(model, _conditions(model, filter), db).first()

    # 2. 不存在 -> INSERT（filter 中的等值條件成為新資料列的欄位）
    if row is None:
        values = {k: v for k, v in filter.items() if not isinstance(v, dict)}
        values.update(fields)
        db.add(model(**values))
        return

    # 3. 存在 -> UPDATE
    for name, value in fields.items():
        setattr(row, name, value)


@transactional
def _delete(db: Session, model: Any, conditions: list, many: bool) -> int:
    query = db.query(model).filter(*conditions)
    if many:
        return query.delete(synchronize_session=False)

    row = query.first()
    if row is None:
        return 0
    db.delete(row)
    return 1


class SqlStore(PersistentStore):

    def __init__(self, engine, session_factory=None) -> None:
        self._engine = engine
        self._session_factory = session_factory or build_session_factory(engine)

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self._engine)

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Disposed database engine")

    @staticmethod
    def _model(collection: str) -> Any:
        model = COLLECTIONS.get(collection)
        if model is None:
            raise ValueError(f"Unknown collection: {collection}")
        return model

    def _write(self, operation: str, collection: str, func, *args) -> bool:
        try:
            with self._session_factory() as db:
                func(db, *args)
            return True
        except SQLAlchemyError as e:
            logger.error(f"{operation} on '{collection}' failed: {e}")
            return False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find(self, collection: str, filter: Filter) -> List[Record]:
        model = self._model(collection)
        try:
            with self._session_factory() as db:
                rows = db.query(model).filter(*_conditions(model, filter)).all()
                return [_to_record(model, row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"find on '{collection}' failed: {e}")
            raise PersistenceFailure("find", collection, str(e)) from e

    def find_one(self, collection: str, filter: Filter) -> Optional[Record]:
        model = self._model(collection)
        try:
            with self._session_factory() as db:
                row = db.query(model).filter(*_conditions(model, filter)).first()
                return _to_record(model, row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"find_one on '{collection}' failed: {e}")
            raise PersistenceFailure("find_one", collection, str(e)) from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_one(self, collection: str, record: Record) -> bool:
        model = self._model(collection)
        return self._write("insert_one", collection, _insert, model, dict(record))

    def update_one(self, collection: str, filter: Filter, fields: Record) -> bool:
        model = self._model(collection)
        return self._write(
            "update_one", collection, _update, model, _conditions(model, filter), dict(fields)
        )

    def upsert_one(self, collection: str, filter: Filter, fields: Record) -> bool:
        model = self._model(collection)
        return self._write("upsert_one", collection, _upsert, model, dict(filter), dict(fields))

    def delete_one(self, collection: str, filter: Filter) -> bool:
        model = self._model(collection)
        return self._write(
            "delete_one", collection, _delete, model, _conditions(model, filter), False
        )

    def delete_many(self, collection: str, filter: Filter) -> bool:
        model = self._model(collection)
        return self._write(
            "delete_many", collection, _delete, model, _conditions(model, filter), True
        )
