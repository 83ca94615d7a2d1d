"""
API 層

FastAPI routers，把外部指令轉成 StateManager 呼叫：
- teams：隊伍與成員
- points：分數與排行榜
"""
