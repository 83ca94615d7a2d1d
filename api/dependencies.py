from fastapi import HTTPException, Request

from core.state_manager import StateManager


def get_state_manager(request: Request) -> StateManager:
    """
    FastAPI dependency：提供本 process 唯一的 StateManager

    StateManager 在 lifespan 啟動時建立並 load()，關閉時 close()；
    這裡只負責取出，不會建立新的實例。
    """
    manager = getattr(request.app.state, "state_manager", None)
    if manager is None or manager.closed:
        raise HTTPException(status_code=503, detail="State manager unavailable")
    return manager
