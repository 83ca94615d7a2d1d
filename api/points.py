"""
Points API Endpoints

職責：
1. 隊伍分數：加減、覆寫、清除全部
2. 參與者分數：加減、覆寫、清除全部
3. 排行榜快照（唯讀）

add 類操作在儲存失敗時不回傳錯誤，而是回傳未變動的餘額（與 core 行為一致）。
"""
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from api.dependencies import get_state_manager
from core.state_manager import StateManager
from schemas import (
    BalanceResponse,
    PointsDelta,
    PointsValue,
    ResetResponse,
    ScoreboardResponse
)
from services.scoreboard_service import build_scoreboard

router = APIRouter(prefix="/api", tags=["points"])
logger = logging.getLogger(__name__)


# ============ Team points ============

@router.get("/points/teams", response_model=Dict[int, int])
def get_team_balances(manager: StateManager = Depends(get_state_manager)):
    return manager.get_all_team_balances()


@router.get("/points/teams/{team_id}", response_model=BalanceResponse)
def get_team_points(team_id: int, manager: StateManager = Depends(get_state_manager)):
    return BalanceResponse(key=str(team_id), balance=manager.get_team_points(team_id))


@router.post("/points/teams/{team_id}", response_model=BalanceResponse)
def add_team_points(team_id: int, data: PointsDelta, manager: StateManager = Depends(get_state_manager)):
    try:
        balance = manager.add_team_points(team_id, data.delta)
        return BalanceResponse(key=str(team_id), balance=balance)

    except Exception as e:
        logger.error(f"Failed to add points to team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/points/teams/{team_id}", response_model=BalanceResponse)
def set_team_points(team_id: int, data: PointsValue, manager: StateManager = Depends(get_state_manager)):
    try:
        if not manager.set_team_points(team_id, data.value):
            raise HTTPException(status_code=503, detail="Failed to persist balance")
        return BalanceResponse(key=str(team_id), balance=data.value)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to set points of team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/points/teams", response_model=ResetResponse)
def reset_team_points(manager: StateManager = Depends(get_state_manager)):
    try:
        if not manager.reset_team_points():
            raise HTTPException(status_code=503, detail="Failed to reset team balances")
        logger.info("Team balances reset via API")
        return ResetResponse(reset=True)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to reset team balances: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


# ============ Participant points ============

@router.get("/points/participants", response_model=Dict[str, int])
def get_participant_balances(manager: StateManager = Depends(get_state_manager)):
    return manager.get_all_participant_balances()


@router.get("/points/participants/{participant_id}", response_model=BalanceResponse)
def get_participant_points(participant_id: str, manager: StateManager = Depends(get_state_manager)):
    return BalanceResponse(key=participant_id, balance=manager.get_participant_points(participant_id))


@router.post("/points/participants/{participant_id}", response_model=BalanceResponse)
def add_participant_points(
    participant_id: str,
    data: PointsDelta,
    manager: StateManager = Depends(get_state_manager)
):
    try:
        balance = manager.add_participant_points(participant_id, data.delta)
        return BalanceResponse(key=participant_id, balance=balance)

    except Exception as e:
        logger.error(f"Failed to add points to participant {participant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/points/participants/{participant_id}", response_model=BalanceResponse)
def set_participant_points(
    participant_id: str,
    data: PointsValue,
    manager: StateManager = Depends(get_state_manager)
):
    try:
        if not manager.set_participant_points(participant_id, data.value):
            raise HTTPException(status_code=503, detail="Failed to persist balance")
        return BalanceResponse(key=participant_id, balance=data.value)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to set points of participant {participant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/points/participants", response_model=ResetResponse)
def reset_participant_points(manager: StateManager = Depends(get_state_manager)):
    try:
        if not manager.reset_participant_points():
            raise HTTPException(status_code=503, detail="Failed to reset participant balances")
        logger.info("Participant balances reset via API")
        return ResetResponse(reset=True)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to reset participant balances: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


# ============ Scoreboard ============

@router.get("/scoreboard", response_model=ScoreboardResponse)
def get_scoreboard(
    limit: int = Query(default=0, ge=0),
    manager: StateManager = Depends(get_state_manager)
):
    """
    排行榜快照

    參數：
        limit: 參與者列表上限（0 = 不限制）
    """
    try:
        return build_scoreboard(manager, limit=limit)
    except Exception as e:
        logger.error(f"Failed to build scoreboard: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
