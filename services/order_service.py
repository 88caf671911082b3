"""
排序驗證服務：收集所有牌、判斷大家排的順序對不對

純計算邏輯，不涉及狀態轉換
"""
from typing import Any, Dict, Iterable, List, Mapping

from models import UNPLACED_POSITION


def get_all_cards_in_order(players: Iterable[Any]) -> List[Dict[str, Any]]:
    """
    把每位玩家的每一張牌攤平成一筆資料，依位置由小到大排序

    每筆資料：
        player_id, player_name, card_number, card_index, position, scale_label

    還沒放位置的牌使用 UNPLACED_POSITION（999），排在最後。
    回合進行中也可以呼叫，主持人用來看目前的排列。
    """
    all_cards: List[Dict[str, Any]] = []

    for player in players:
        positions = player.card_positions or []
        labels = player.scale_labels or []
        for card_index, card_number in enumerate(player.cards or []):
            position = positions[card_index] if card_index < len(positions) else None
            label = labels[card_index] if card_index < len(labels) else None
            all_cards.append({
                "player_id": player.id,
                "player_name": player.name,
                "card_number": card_number,
                "card_index": card_index,
                "position": UNPLACED_POSITION if position is None else position,
                "scale_label": label or "",
            })

    return sorted(all_cards, key=lambda card: card["position"])


def validate_card_order(cards: Iterable[Mapping[str, Any]]) -> bool:
    """
    依 position 排序後，相鄰兩張的 card_number 必須嚴格遞增

    相等也算錯（發牌保證不會重複，但這裡不依賴這個保證）

    範例：
        [{1, pos 0}, {2, pos 1}, {3, pos 2}] -> True
        [{3, pos 0}, {1, pos 1}] -> False
        [{5, pos 0}, {5, pos 1}] -> False
    """
    by_position = sorted(cards, key=lambda card: card["position"])
    for previous, current in zip(by_position, by_position[1:]):
        if current["card_number"] <= previous["card_number"]:
            return False
    return True
