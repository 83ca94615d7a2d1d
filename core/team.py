"""
Team entity

Team 是 TeamDirectory 內部 cache 的資料單位；對外一律回傳 copy()，
呼叫者修改回傳值不會影響內部狀態。
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from services.color_service import to_hex

# Store collection 名稱
TEAMS = "teams"
PARTICIPANTS = "participants"
POINTS = "points"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def participant_key(participant_id: Any) -> str:
    """參與者 ID 一律以字串保存（UUID 或其他 opaque ID 皆可）"""
    return str(participant_id)


@dataclass
class Team:
    id: int
    name: str
    display_name: str
    color: int
    members: Set[str] = field(default_factory=set)
    created_at: Optional[datetime] = None

    @property
    def name_key(self) -> str:
        return self.name.casefold()

    @property
    def hex_color(self) -> str:
        return to_hex(self.color)

    def is_member(self, participant_id: Any) -> bool:
        return participant_key(participant_id) in self.members

    def copy(self) -> "Team":
        return replace(self, members=set(self.members))

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "color": self.color,
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Team":
        return cls(
            id=int(record["id"]),
            name=record["name"],
            display_name=record.get("display_name") or record["name"],
            color=int(record.get("color") or 0),
            created_at=record.get("created_at"),
        )
