"""
State Manager：計分狀態的單一入口

組合 TeamDirectory 與兩個 PointLedger，對外提供一致的 API。

生命週期：
- 每個 process 建立一次（啟動時），load() 之後才開始服務
- close() 之後不能再使用，也不會被自動重建

跨實體規則：
- 刪除隊伍會 cascade 移除所有成員關係
- 參與者的分數不受隊伍異動影響（分數獨立於目前所屬隊伍）
- 被刪除隊伍本身的隊伍分數會被清除（best-effort）
- 隊伍分數不檢查隊伍是否存在（與 PointLedger 相同，未知 key 視為 0）
"""
import logging
from typing import Any, Dict, List, Optional, Union

from core.exceptions import StateManagerClosed
from core.point_ledger import ParticipantPointLedger, TeamPointLedger
from core.team import Team
from core.team_directory import TeamDirectory
from storage.base import PersistentStore

logger = logging.getLogger(__name__)


class StateManager:
    """Team Directory + Point Ledger facade"""

    def __init__(self, store: PersistentStore) -> None:
        self._store = store
        self._closed = False
        self.teams = TeamDirectory(store)
        self.team_points = TeamPointLedger(store)
        self.participant_points = ParticipantPointLedger(store)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> "StateManager":
        """
        Cold-cache fill：從 store 載入所有隊伍、成員關係與分數

        異常：
            PersistenceFailure: store 讀取失敗（呼叫者應讓啟動失敗）
        """
        self._ensure_open()
        self.teams.load()
        self.team_points.load()
        self.participant_points.load()
        # 已刪除隊伍可能還留有分數紀錄，新隊伍的 id 要跳過它們
        self.teams.reserve_ids(self.team_points.get_all_balances())
        logger.info("State manager loaded")
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._store.close()
        logger.info("State manager closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise StateManagerClosed("State manager has been closed")

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def create_team(
        self,
        name: str,
        display_name: Optional[str] = None,
        color: Union[int, str] = 0xFFFFFF
    ) -> Optional[Team]:
        self._ensure_open()
        return self.teams.create_team(name, display_name, color)

    def get_team(self, team_id: int) -> Team:
        return self.teams.get_team(team_id)

    def get_team_by_name(self, name: str) -> Team:
        return self.teams.get_team_by_name(name)

    def list_teams(self) -> List[Team]:
        return self.teams.list_teams()

    def update_team(self, team: Team) -> bool:
        self._ensure_open()
        return self.teams.update_team(team)

    def rename_team(self, team_id: int, name: str) -> bool:
        team = self.teams.get_team(team_id)
        team.name = name
        return self.update_team(team)

    def set_team_display_name(self, team_id: int, display_name: str) -> bool:
        team = self.teams.get_team(team_id)
        team.display_name = display_name
        return self.update_team(team)

    def set_team_color(self, team_id: int, color: Union[int, str]) -> bool:
        team = self.teams.get_team(team_id)
        team.color = color
        return self.update_team(team)

    def delete_team(self, team_id: int) -> bool:
        """
        刪除隊伍

        流程：
        1. TeamDirectory 刪除隊伍並 cascade 解除所有成員關係
        2. 清除該隊伍的隊伍分數（best-effort，失敗只記 log）

        參與者分數完全不受影響。
        """
        self._ensure_open()
        if not self.teams.delete_team(team_id):
            return False

        if not self.team_points.clear(team_id):
            logger.warning(f"Balance of deleted team {team_id} could not be cleared")
        return True

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def add_participant_to_team(
        self,
        participant_id: Any,
        team_id: int,
        display_name: Optional[str] = None
    ) -> bool:
        self._ensure_open()
        return self.teams.add_participant_to_team(participant_id, team_id, display_name)

    def remove_participant_from_team(self, participant_id: Any) -> bool:
        self._ensure_open()
        return self.teams.remove_participant_from_team(participant_id)

    def get_participant_team(self, participant_id: Any) -> Team:
        return self.teams.get_participant_team(participant_id)

    # ------------------------------------------------------------------
    # Team points
    # ------------------------------------------------------------------

    def add_team_points(self, team_id: int, delta: int) -> int:
        self._ensure_open()
        return self.team_points.add_points(team_id, delta)

    def remove_team_points(self, team_id: int, delta: int) -> int:
        self._ensure_open()
        return self.team_points.remove_points(team_id, delta)

    def set_team_points(self, team_id: int, value: int) -> bool:
        self._ensure_open()
        return self.team_points.set_points(team_id, value)

    def get_team_points(self, team_id: int) -> int:
        return self.team_points.get_points(team_id)

    def get_all_team_balances(self) -> Dict[int, int]:
        return self.team_points.get_all_balances()

    def reset_team_points(self) -> bool:
        self._ensure_open()
        return self.team_points.reset_all()

    # ------------------------------------------------------------------
    # Participant points
    # ------------------------------------------------------------------

    def add_participant_points(self, participant_id: Any, delta: int) -> int:
        self._ensure_open()
        return self.participant_points.add_points(participant_id, delta)

    def remove_participant_points(self, participant_id: Any, delta: int) -> int:
        self._ensure_open()
        return self.participant_points.remove_points(participant_id, delta)

    def set_participant_points(self, participant_id: Any, value: int) -> bool:
        self._ensure_open()
        return self.participant_points.set_points(participant_id, value)

    def get_participant_points(self, participant_id: Any) -> int:
        return self.participant_points.get_points(participant_id)

    def get_all_participant_balances(self) -> Dict[str, int]:
        return self.participant_points.get_all_balances()

    def reset_participant_points(self) -> bool:
        self._ensure_open()
        return self.participant_points.reset_all()

