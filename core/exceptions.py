"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理
"""


class ScoreboardException(Exception):
    """所有計分狀態異常的基類"""
    pass


class NotFound(ScoreboardException):
    """查詢的隊伍或隊伍成員關係不存在"""
    pass


# ============ Team 相關異常 ============

class TeamNotFound(NotFound):
    """隊伍不存在"""
    def __init__(self, team_id):
        self.team_id = team_id
        super().__init__(f"Team {team_id} not found")


class DuplicateTeamName(ScoreboardException):
    """隊伍名稱已被使用（不分大小寫）"""
    def __init__(self, name):
        self.name = name
        super().__init__(f"Team name '{name}' is already taken")


# ============ Participant 相關異常 ============

class ParticipantNotInTeam(NotFound):
    """參與者目前不屬於任何隊伍"""
    def __init__(self, participant_id):
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} is not on a team")


# ============ Persistence 相關異常 ============

class PersistenceFailure(ScoreboardException):
    """儲存層呼叫失敗（連線、constraint、timeout）"""
    def __init__(self, operation, collection, detail=""):
        self.operation = operation
        self.collection = collection
        message = f"{operation} on '{collection}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# ============ Lifecycle 相關異常 ============

class StateManagerClosed(ScoreboardException):
    """StateManager 已關閉，不能再使用"""
    pass
