"""
位置服務：回合中移動牌的位置（交換策略）

所有函式只處理 {player_id: [position, ...]}，不碰資料庫；
呼叫端負責在同一個 transaction 裡讀最新資料、計算、整份寫回。
"""
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from models import UNPLACED_POSITION


def initial_positions(player_ids: Sequence[str], cards_per_player: int) -> Dict[str, List[int]]:
    """
    開局時預先排好位置：0..N-1，依玩家順序、再依手牌順序

    範例（2 位玩家、每人 2 張）：
        {"a": [0, 1], "b": [2, 3]}
    """
    positions = {}
    for index, player_id in enumerate(player_ids):
        start = index * cards_per_player
        positions[player_id] = list(range(start, start + cards_per_player))
    return positions


def find_card_at(
    positions: Mapping[str, Sequence[int]],
    position: int
) -> Optional[Tuple[str, int]]:
    """找出佔據某個位置的牌，回傳 (player_id, card_index)，沒有則回傳 None"""
    if position == UNPLACED_POSITION:
        return None
    for player_id, player_positions in positions.items():
        for card_index, occupied in enumerate(player_positions):
            if occupied == position:
                return player_id, card_index
    return None


def apply_position_swap(
    positions: Mapping[str, Sequence[int]],
    player_id: str,
    card_index: int,
    new_position: int
) -> Dict[str, List[int]]:
    """
    把 player_id 的第 card_index 張牌移到 new_position

    如果 new_position 已經被另一張牌佔據（包括自己的另一張牌），
    那張牌會換到移動者原本的位置。只要移動前沒有重複位置，移動後也不會有。

    返回：
        新的 positions（不修改傳入的資料）
    """
    result = {pid: list(player_positions) for pid, player_positions in positions.items()}
    old_position = result[player_id][card_index]
    if old_position == new_position:
        return result

    displaced = find_card_at(result, new_position)
    if displaced is not None:
        displaced_player_id, displaced_index = displaced
        result[displaced_player_id][displaced_index] = old_position

    result[player_id][card_index] = new_position
    return result


def occupied_positions_are_distinct(positions: Mapping[str, Sequence[int]]) -> bool:
    occupied = [
        position
        for player_positions in positions.values()
        for position in player_positions
        if position != UNPLACED_POSITION
    ]
    return len(occupied) == len(set(occupied))
