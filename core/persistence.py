"""
Write-through 輔助函式（TeamDirectory 與 PointLedger 共用）

所有 store 寫入都經過這裡：失敗時記錄 operation 與 key，並回傳 False。
呼叫者只有在回傳 True 之後才能更新記憶體。
"""
import logging
from typing import Callable

from core.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


def write_through(operation: str, key, write: Callable[[], bool]) -> bool:
    """
    執行一次 store 寫入

    參數：
        operation: 操作名稱（寫進 log）
        key: 受影響的 key（寫進 log）
        write: 實際呼叫 store 的函式

    返回：
        True 如果寫入成功，False 否則（PersistenceFailure 不會往外拋）
    """
    try:
        ok = write()
    except PersistenceFailure as e:
        logger.error(f"{operation} failed for {key}: {e}")
        return False

    if not ok:
        logger.error(f"{operation} failed for {key}: store reported failure")
    return bool(ok)
