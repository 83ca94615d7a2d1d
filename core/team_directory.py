"""
Team Directory：管理隊伍與隊伍成員關係

職責：
1. 啟動時從 store 載入所有隊伍與成員關係（cold-cache fill）
2. 建立 / 修改 / 刪除隊伍
3. 維護雙向成員索引：participant -> team_id 以及 Team.members

寫入順序：先寫 store，確認成功後才更新記憶體（write-through）

鎖定：
- _write_lock（RLock）：序列化所有寫入，包含 store 呼叫期間
  （隊伍數量很少，一把粗粒度的鎖就足夠；id 分配也在這把鎖內）
- _state_lock：只保護記憶體結構，讀取時短暫持有，不會被 store 呼叫阻塞
"""
import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Union

from core.exceptions import DuplicateTeamName, ParticipantNotInTeam, TeamNotFound
from core.persistence import write_through
from core.team import PARTICIPANTS, TEAMS, Team, participant_key, utc_now
from services.color_service import parse_color
from storage.base import PersistentStore

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("Team name must not be empty")
    return name


class TeamDirectory:
    """隊伍與成員關係的 write-through cache"""

    def __init__(self, store: PersistentStore) -> None:
        self._store = store
        self._write_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._teams: Dict[int, Team] = {}
        self._participant_teams: Dict[str, int] = {}
        self._display_names: Dict[str, str] = {}
        self._next_id = 1

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    def load(self) -> None:
        """
        從 store 載入所有隊伍與成員關係

        流程：
        1. 載入所有隊伍
        2. 載入所有參與者（顯示名稱），只接受指向存在隊伍的成員關係
        3. 計算下一個 id：max(existing ids) + 1

        異常：
            PersistenceFailure: store 讀取失敗（啟動應該直接失敗）
        """
        teams: Dict[int, Team] = {}
        for record in self._store.find(TEAMS, {}):
            team = Team.from_record(record)
            teams[team.id] = team

        index: Dict[str, int] = {}
        names: Dict[str, str] = {}
        for record in self._store.find(PARTICIPANTS, {}):
            pid = participant_key(record["participant_id"])
            if record.get("display_name"):
                names[pid] = record["display_name"]
            if record.get("team_id") is None:
                continue
            team = teams.get(record["team_id"])
            if team is None:
                logger.warning(
                    f"Participant {pid} references missing team {record['team_id']}, ignoring"
                )
                continue
            team.members.add(pid)
            index[pid] = team.id

        with self._write_lock, self._state_lock:
            self._teams = teams
            self._participant_teams = index
            self._display_names = names
            self._next_id = max(teams, default=0) + 1

        logger.info(f"Loaded {len(teams)} teams and {len(index)} memberships")

    def reserve_ids(self, used_ids: Iterable[int]) -> None:
        """
        讓下一個 id 跳過已經被使用過的 id

        store 裡可能還留有已刪除隊伍的分數紀錄，新隊伍不能接手這些 id。
        """
        highest = max((int(i) for i in used_ids), default=0)
        with self._write_lock, self._state_lock:
            if highest >= self._next_id:
                self._next_id = highest + 1
                logger.info(f"Next team id advanced to {self._next_id}")

    # ------------------------------------------------------------------
    # Queries（純記憶體讀取）
    # ------------------------------------------------------------------

    def get_team(self, team_id: int) -> Team:
        with self._state_lock:
            team = self._teams.get(team_id)
            if team is None:
                raise TeamNotFound(team_id)
            return team.copy()

    def get_team_by_name(self, name: str) -> Team:
        with self._state_lock:
            team = self._find_by_name(name)
            if team is None:
                raise TeamNotFound(name)
            return team.copy()

    def list_teams(self) -> List[Team]:
        with self._state_lock:
            return [self._teams[team_id].copy() for team_id in sorted(self._teams)]

    def get_participant_team(self, participant_id: Any) -> Team:
        pid = participant_key(participant_id)
        with self._state_lock:
            team_id = self._participant_teams.get(pid)
            if team_id is None:
                raise ParticipantNotInTeam(pid)
            return self._teams[team_id].copy()

    def memberships(self) -> Dict[str, int]:
        with self._state_lock:
            return dict(self._participant_teams)

    def display_names(self) -> Dict[str, str]:
        with self._state_lock:
            return dict(self._display_names)

    def _find_by_name(self, name: str) -> Optional[Team]:
        # 線性搜尋即可：隊伍數量是幾十個，不是幾百萬個
        key = (name or "").strip().casefold()
        for team in self._teams.values():
            if team.name_key == key:
                return team
        return None

    # ------------------------------------------------------------------
    # Team lifecycle
    # ------------------------------------------------------------------

    def create_team(
        self,
        name: str,
        display_name: Optional[str] = None,
        color: Union[int, str] = 0xFFFFFF
    ) -> Optional[Team]:
        """
        建立新隊伍

        流程：
        1. 驗證名稱與顏色
        2. 檢查名稱是否重複（不分大小寫）
        3. 分配下一個 id（在寫入鎖內，避免重複分配）
        4. 寫入 store，成功後放入記憶體

        參數：
            name: 隊伍名稱（唯一，不分大小寫）
            display_name: 顯示名稱（預設與 name 相同）
            color: "#RRGGBB" 或 24-bit 整數

        返回：
            建立的 Team（copy），store 寫入失敗時返回 None

        異常：
            DuplicateTeamName: 名稱已被其他隊伍使用
            ValueError: 名稱為空或顏色格式錯誤
        """
        name = _clean_name(name)
        display_name = (display_name or "").strip() or name
        color = parse_color(color)

        with self._write_lock:
            # 1. 名稱唯一性
            if self._find_by_name(name) is not None:
                raise DuplicateTeamName(name)

            # 2. 分配 id（即使寫入失敗也不重用）
            team_id = self._next_id
            self._next_id += 1

            team = Team(
                id=team_id,
                name=name,
                display_name=display_name,
                color=color,
                created_at=utc_now()
            )

            # 3. 寫入 store
            record = team.to_record()
            if not write_through("create_team", team_id, lambda: self._store.insert_one(TEAMS, record)):
                return None

            # 4. 更新記憶體
            with self._state_lock:
                self._teams[team_id] = team

        logger.info(f"Created team {team_id} ({name})")
        return team.copy()

    def update_team(self, team: Team) -> bool:
        """
        依 id 更新隊伍欄位（name / display_name / color）

        成員名單不透過這個方法修改，傳入的 team.members 會被忽略。

        返回：
            True 如果 store 寫入成功並已更新記憶體，False 否則

        異常：
            TeamNotFound: 隊伍不存在
            DuplicateTeamName: 新名稱與其他隊伍衝突
        """
        name = _clean_name(team.name)
        display_name = (team.display_name or "").strip() or name
        color = parse_color(team.color)

        with self._write_lock:
            current = self._teams.get(team.id)
            if current is None:
                raise TeamNotFound(team.id)

            clash = self._find_by_name(name)
            if clash is not None and clash.id != team.id:
                raise DuplicateTeamName(name)

            fields = {"name": name, "display_name": display_name, "color": color}
            ok = write_through(
                "update_team", team.id,
                lambda: self._store.update_one(TEAMS, {"id": team.id}, fields)
            )
            if not ok:
                return False

            with self._state_lock:
                current.name = name
                current.display_name = display_name
                current.color = color

        logger.info(f"Updated team {team.id} ({name})")
        return True

    def delete_team(self, team_id: int) -> bool:
        """
        刪除隊伍（cascade：所有成員變成無隊伍）

        流程：
        1. 寫入 store：刪除隊伍紀錄（失敗則記憶體完全不變）
        2. 逐一把成員的 team_id 設為 NULL（best-effort，失敗只記 log）
        3. 從記憶體移除成員關係與隊伍

        返回：
            True 如果隊伍紀錄已刪除，False 否則

        異常：
            TeamNotFound: 隊伍不存在

        注意：
            - cascade 失敗的成員在 store 中仍指向已刪除的隊伍，
              下次 load() 時會被忽略（隊伍不存在）
        """
        with self._write_lock:
            team = self._teams.get(team_id)
            if team is None:
                raise TeamNotFound(team_id)

            # 1. 刪除隊伍紀錄
            ok = write_through(
                "delete_team", team_id,
                lambda: self._store.delete_one(TEAMS, {"id": team_id})
            )
            if not ok:
                return False

            # 2. Cascade：成員解除隊伍
            for pid in sorted(team.members):
                unassigned = write_through(
                    "unassign_participant", pid,
                    lambda pid=pid: self._store.update_one(
                        PARTICIPANTS, {"participant_id": pid}, {"team_id": None}
                    )
                )
                if not unassigned:
                    logger.warning(
                        f"Participant {pid} may still reference deleted team {team_id} in the store"
                    )

            # 3. 更新記憶體
            with self._state_lock:
                for pid in team.members:
                    self._participant_teams.pop(pid, None)
                del self._teams[team_id]

        logger.info(f"Deleted team {team_id} ({team.name}), unassigned {len(team.members)} members")
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
        """
        把參與者加入隊伍

        流程：
        1. 確認隊伍存在
        2. 如果參與者已在其他隊伍，先移出（隱含的 remove_participant_from_team）
        3. 寫入 store（upsert 參與者紀錄的 team_id）
        4. 同時更新 Team.members 與成員索引

        參數：
            participant_id: 參與者 ID（UUID 或字串）
            team_id: 目標隊伍 id
            display_name: 顯示名稱（寫入時快取，供 presentation 使用）

        返回：
            True 如果成功，False 如果 store 寫入失敗

        異常：
            TeamNotFound: 隊伍不存在
        """
        pid = participant_key(participant_id)

        with self._write_lock:
            team = self._teams.get(team_id)
            if team is None:
                raise TeamNotFound(team_id)

            current_team_id = self._participant_teams.get(pid)
            if current_team_id == team_id and not display_name:
                return True

            if current_team_id is not None and current_team_id != team_id:
                if not self._unassign(pid, current_team_id):
                    return False

            fields: Dict[str, Any] = {"team_id": team_id}
            if display_name:
                fields["display_name"] = display_name

            ok = write_through(
                "assign_participant", pid,
                lambda: self._store.upsert_one(PARTICIPANTS, {"participant_id": pid}, fields)
            )
            if not ok:
                return False

            with self._state_lock:
                team.members.add(pid)
                self._participant_teams[pid] = team_id
                if display_name:
                    self._display_names[pid] = display_name

        logger.info(f"Participant {pid} joined team {team_id}")
        return True

    def remove_participant_from_team(self, participant_id: Any) -> bool:
        """
        把參與者移出目前的隊伍

        返回：
            True 如果成功，False 如果 store 寫入失敗

        異常：
            ParticipantNotInTeam: 參與者目前沒有隊伍
        """
        pid = participant_key(participant_id)

        with self._write_lock:
            team_id = self._participant_teams.get(pid)
            if team_id is None:
                raise ParticipantNotInTeam(pid)
            return self._unassign(pid, team_id)

    def _unassign(self, pid: str, team_id: int) -> bool:
        # 呼叫者必須持有 _write_lock
        ok = write_through(
            "unassign_participant", pid,
            lambda: self._store.update_one(PARTICIPANTS, {"participant_id": pid}, {"team_id": None})
        )
        if not ok:
            return False

        with self._state_lock:
            self._teams[team_id].members.discard(pid)
            self._participant_teams.pop(pid, None)

        logger.info(f"Participant {pid} left team {team_id}")
        return True
