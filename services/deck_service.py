"""
發牌服務：洗牌、發牌、翻主題牌

純計算邏輯，不涉及狀態轉換
"""
import random
from typing import Dict, List, Optional, Sequence, Tuple

TOTAL_CARDS = 100


def create_deck() -> List[int]:
    """建立 1..100 的牌堆"""
    return list(range(1, TOTAL_CARDS + 1))


def shuffle_deck(deck: Sequence[int], rng: Optional[random.Random] = None) -> List[int]:
    """
    Fisher-Yates 洗牌，回傳新的 list（不修改傳入的牌堆）

    由最後一張往前，每張和 [0, i] 之間隨機一張交換
    """
    rng = rng or random.SystemRandom()
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def deal_cards(
    player_ids: Sequence[str],
    cards_per_player: int,
    rng: Optional[random.Random] = None
) -> Tuple[Dict[str, List[int]], int]:
    """
    洗牌後依玩家順序發牌，並翻出主題牌

    規則：
    - 第 k 位玩家拿到洗好的牌堆中 [k*c, (k+1)*c) 這一段
    - 主題牌是最後一手牌的下一張，也就是 deck[len(player_ids) * c]
    - 只有牌堆順序是隨機的，分配方式是固定的

    參數：
        player_ids: 玩家 ID（不可重複）
        cards_per_player: 每人張數（1 或 2）
        rng: 可注入的亂數產生器（測試用）

    返回：
        (每位玩家的手牌, 主題牌)

    異常：
        ValueError: 張數不合法、玩家重複，或牌不夠發（還要留一張當主題牌）
    """
    if cards_per_player not in (1, 2):
        raise ValueError(f"cards_per_player must be 1 or 2, got {cards_per_player}")
    if len(set(player_ids)) != len(player_ids):
        raise ValueError("player_ids must be distinct")

    dealt_count = len(player_ids) * cards_per_player
    if dealt_count >= TOTAL_CARDS:
        raise ValueError(
            f"Cannot deal {cards_per_player} cards to {len(player_ids)} players "
            f"and still reveal a theme card"
        )

    deck = shuffle_deck(create_deck(), rng)

    distribution = {}
    for index, player_id in enumerate(player_ids):
        start = index * cards_per_player
        distribution[player_id] = deck[start:start + cards_per_player]

    return distribution, deck[dealt_count]
