"""
排行榜快照 Service

從 State Manager 的記憶體快照建立唯讀、可直接輸出 JSON 的文件，
讓 overlay 與排行榜顯示名次時不會碰到可變狀態。
"""
from datetime import datetime, timezone
from typing import Any, Dict, List

from core.state_manager import StateManager


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_scoreboard(manager: StateManager, *, limit: int = 0) -> Dict[str, Any]:
    """
    建立排行榜快照

    流程：
    1. 讀取隊伍、分數、成員關係與顯示名稱（全部是 copy）
    2. 隊伍依分數由高到低排序，同分依 id
    3. 參與者依分數由高到低排序，同分依 id，再套用 limit
    4. 加上名次

    參數：
        limit: 參與者列表上限（0 = 不限制）

    返回：
        {generated_at, teams, participants}
    """
    teams = manager.list_teams()
    team_balances = manager.get_all_team_balances()
    participant_balances = manager.get_all_participant_balances()
    memberships = manager.teams.memberships()
    names = manager.teams.display_names()

    team_rows: List[Dict[str, Any]] = [
        {
            "team_id": team.id,
            "name": team.name,
            "display_name": team.display_name,
            "color": team.hex_color,
            "member_count": len(team.members),
            "points": team_balances.get(team.id, 0),
        }
        for team in teams
    ]
    team_rows.sort(key=lambda row: (-row["points"], row["team_id"]))

    participant_rows: List[Dict[str, Any]] = [
        {
            "participant_id": pid,
            # 沒有記錄過名稱時用 id 顯示
            "display_name": names.get(pid, pid),
            "team_id": memberships.get(pid),
            "points": points,
        }
        for pid, points in participant_balances.items()
    ]
    participant_rows.sort(key=lambda row: (-row["points"], row["participant_id"]))
    if limit > 0:
        participant_rows = participant_rows[:limit]

    for rank, row in enumerate(team_rows, start=1):
        row["rank"] = rank
    for rank, row in enumerate(participant_rows, start=1):
        row["rank"] = rank

    return {
        "generated_at": _utc_now(),
        "teams": team_rows,
        "participants": participant_rows,
    }
