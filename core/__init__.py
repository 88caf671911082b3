"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- 狀態機：集中管理房間狀態轉換與關閉
- Manager：管理 Room 與 Round 的生命週期
- Locks：並發控制工具
- Exceptions：帶有穩定錯誤種類的異常
"""
