"""
ORM models for the relational backend

三個資料表對應 document 版本的三個 collection：
- teams：隊伍
- participants：參與者身份 + 顯示名稱 + 目前隊伍
- points：分數（team_id 或 participant_id 二擇一）
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from core.team import utc_now
from database import Base


class TeamRecord(Base):
    __tablename__ = "teams"

    # id 由 TeamDirectory 分配（max + 1），不使用資料庫自動遞增
    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(64), nullable=False, index=True)
    display_name = Column(String(128), nullable=False)
    color = Column(Integer, nullable=False, default=0xFFFFFF)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)


class ParticipantRecord(Base):
    __tablename__ = "participants"

    participant_id = Column(String(64), primary_key=True)
    display_name = Column(String(128), nullable=True)
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )


class PointsRecord(Base):
    __tablename__ = "points"

    id = Column(Integer, primary_key=True, autoincrement=True)
    team_id = Column(Integer, nullable=True, unique=True)
    participant_id = Column(String(64), nullable=True, unique=True)
    balance = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utc_now)


# collection 名稱 -> ORM model（SqlStore 用來翻譯 document 風格的呼叫）
COLLECTIONS = {
    "teams": TeamRecord,
    "participants": ParticipantRecord,
    "points": PointsRecord,
}
