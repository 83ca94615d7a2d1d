"""
儲存層

這個 package 包含 Persistent Store Adapter 的介面與兩種實作：
- PersistentStore：core 使用的介面
- SqlStore：關聯式後端（SQLAlchemy）
- InMemoryDocumentStore：document 後端（記憶體，測試與單機使用）
"""
import logging

from database import build_engine

from storage.base import PersistentStore
from storage.document_store import InMemoryDocumentStore
from storage.sql_store import SqlStore

logger = logging.getLogger(__name__)


def create_store(settings) -> PersistentStore:
    """依照設定建立對應的 store（sql | memory）"""
    backend = settings.store_backend.lower()

    if backend == "memory":
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore()

    if backend == "sql":
        engine = build_engine(settings.database_url, echo=settings.database_echo)
        store = SqlStore(engine)
        store.create_tables()
        logger.info(f"Using relational store at {engine.url.render_as_string(hide_password=True)}")
        return store

    raise ValueError(f"Unknown store backend: {settings.store_backend}")
