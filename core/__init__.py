"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- TeamDirectory：隊伍與成員關係
- PointLedger：隊伍分數與參與者分數
- StateManager：組合以上元件的單一入口
- Locks：並發控制工具
"""
