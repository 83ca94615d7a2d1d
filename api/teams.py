"""
Team API Endpoints

職責：
1. 隊伍 CRUD
2. 隊伍成員加入 / 移出
3. 查詢參與者所屬隊伍
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
import logging

from api.dependencies import get_state_manager
from core.exceptions import DuplicateTeamName, ParticipantNotInTeam, TeamNotFound
from core.state_manager import StateManager
from schemas import (
    MembershipRequest,
    MembershipResponse,
    TeamCreate,
    TeamResponse,
    TeamUpdate
)

router = APIRouter(prefix="/api", tags=["teams"])
logger = logging.getLogger(__name__)


@router.get("/teams", response_model=List[TeamResponse])
def list_teams(manager: StateManager = Depends(get_state_manager)):
    return [TeamResponse.from_team(team) for team in manager.list_teams()]


@router.post("/teams", response_model=TeamResponse, status_code=201)
def create_team(data: TeamCreate, manager: StateManager = Depends(get_state_manager)):
    """
    建立隊伍

    錯誤：
        409: 名稱已被使用（不分大小寫）
        422: 名稱或顏色格式錯誤
        503: 儲存失敗
        500: 未預期的錯誤（會記錄 stack trace）
    """
    try:
        team = manager.create_team(data.name, data.display_name, data.color)
        if team is None:
            raise HTTPException(status_code=503, detail="Failed to persist team")
        return TeamResponse.from_team(team)

    except HTTPException:
        raise
    except DuplicateTeamName as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create team: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/teams/{team_id}", response_model=TeamResponse)
def get_team(team_id: int, manager: StateManager = Depends(get_state_manager)):
    try:
        return TeamResponse.from_team(manager.get_team(team_id))
    except TeamNotFound:
        raise HTTPException(status_code=404, detail="Team not found")


@router.patch("/teams/{team_id}", response_model=TeamResponse)
def update_team(team_id: int, data: TeamUpdate, manager: StateManager = Depends(get_state_manager)):
    """
    修改隊伍（只更新有提供的欄位）

    流程：
    1. 取得目前的隊伍（copy）
    2. 套用有提供的欄位
    3. update_team 寫入 store 並更新記憶體
    """
    try:
        # 1. 目前的隊伍
        team = manager.get_team(team_id)

        # 2. 套用變更
        if data.name is not None:
            team.name = data.name
        if data.display_name is not None:
            team.display_name = data.display_name
        if data.color is not None:
            team.color = data.color

        # 3. 寫入
        if not manager.update_team(team):
            raise HTTPException(status_code=503, detail="Failed to persist team")

        return TeamResponse.from_team(manager.get_team(team_id))

    except HTTPException:
        raise
    except TeamNotFound:
        raise HTTPException(status_code=404, detail="Team not found")
    except DuplicateTeamName as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/teams/{team_id}", status_code=204)
def delete_team(team_id: int, manager: StateManager = Depends(get_state_manager)):
    try:
        if not manager.delete_team(team_id):
            raise HTTPException(status_code=503, detail="Failed to delete team")

    except HTTPException:
        raise
    except TeamNotFound:
        raise HTTPException(status_code=404, detail="Team not found")
    except Exception as e:
        logger.error(f"Failed to delete team {team_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/teams/{team_id}/members/{participant_id}", response_model=MembershipResponse)
def add_member(
    team_id: int,
    participant_id: str,
    data: Optional[MembershipRequest] = None,
    manager: StateManager = Depends(get_state_manager)
):
    """
    把參與者加入隊伍（如果已在其他隊伍，會先移出）
    """
    try:
        display_name = data.display_name if data else None
        if not manager.add_participant_to_team(participant_id, team_id, display_name):
            raise HTTPException(status_code=503, detail="Failed to persist membership")

        logger.info(f"Participant {participant_id} assigned to team {team_id} via API")
        return MembershipResponse(participant_id=participant_id, team_id=team_id)

    except HTTPException:
        raise
    except TeamNotFound:
        raise HTTPException(status_code=404, detail="Team not found")
    except Exception as e:
        logger.error(f"Failed to assign participant {participant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/participants/{participant_id}/team", response_model=TeamResponse)
def get_participant_team(participant_id: str, manager: StateManager = Depends(get_state_manager)):
    try:
        return TeamResponse.from_team(manager.get_participant_team(participant_id))
    except ParticipantNotInTeam:
        raise HTTPException(status_code=404, detail="Participant is not on a team")


@router.delete("/participants/{participant_id}/team", status_code=204)
def remove_member(participant_id: str, manager: StateManager = Depends(get_state_manager)):
    try:
        if not manager.remove_participant_from_team(participant_id):
            raise HTTPException(status_code=503, detail="Failed to persist membership")

    except HTTPException:
        raise
    except ParticipantNotInTeam:
        raise HTTPException(status_code=404, detail="Participant is not on a team")
    except Exception as e:
        logger.error(f"Failed to remove participant {participant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
