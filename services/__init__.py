"""
服務層

這個 package 包含純計算邏輯，不負責狀態變更：
- color_service：隊伍顏色解析與格式化
- scoreboard_service：排行榜快照（唯讀）
"""
