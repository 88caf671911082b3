"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- DeckService：洗牌與發牌
- OrderService：收集所有牌、驗證順序
- PositionService：位置交換
- ThemeService：主題尺度
- NamingService：房間代碼與身分生成
- StateService：state_version、事件紀錄、房間快照
"""
