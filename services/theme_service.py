"""
主題服務：主題牌對應的比較尺度

每 5 張牌一個區間（1-5, 6-10, ..., 96-100），共 20 個主題
"""
from typing import Any, Dict, List

CARDS_PER_THEME = 5

THEME_SCALES = [
    "Worst nightmare → Dream come true",
    "Terrible relationship → Soulmates",
    "Disgusting food → Delicious meal",
    "Boring weekend → Best vacation ever",
    "Awkward silence → Perfect conversation",
    "Worst movie ever → Cinematic masterpiece",
    "Freezing cold → Burning hot",
    "Terrible haircut → Perfect hairstyle",
    "Annoying song → Favorite anthem",
    "Worst gift → Most thoughtful present",
    "Embarrassing moment → Proudest achievement",
    "Terrible joke → Hilarious comedy",
    "Worst day → Best day of your life",
    "Boring book → Page-turner masterpiece",
    "Awful smell → Amazing fragrance",
    "Terrible advice → Life-changing wisdom",
    "Worst party → Epic celebration",
    "Painful experience → Pure bliss",
    "Biggest regret → Best decision ever",
    "Complete disaster → Absolute perfection",
]

THEME_COUNT = len(THEME_SCALES)


def get_theme_interval(card_number: int) -> int:
    """
    主題區間 = floor((card - 1) / 5)

    範例：
        get_theme_interval(1) -> 0
        get_theme_interval(5) -> 0
        get_theme_interval(6) -> 1
        get_theme_interval(100) -> 19
    """
    if not 1 <= card_number <= CARDS_PER_THEME * THEME_COUNT:
        raise ValueError(f"Card number must be in 1..100, got {card_number}")
    return (card_number - 1) // CARDS_PER_THEME


def get_theme(interval: int) -> Dict[str, Any]:
    if not 0 <= interval < THEME_COUNT:
        raise ValueError(f"Theme interval must be in 0..{THEME_COUNT - 1}, got {interval}")
    low = interval * CARDS_PER_THEME + 1
    return {
        "interval": interval,
        "range": [low, low + CARDS_PER_THEME - 1],
        "scale": THEME_SCALES[interval],
    }


def get_theme_from_card(card_number: int) -> Dict[str, Any]:
    return get_theme(get_theme_interval(card_number))


def get_cards_in_interval(interval: int) -> List[int]:
    """某個主題區間內的 5 張牌"""
    low, high = get_theme(interval)["range"]
    return list(range(low, high + 1))


def list_themes() -> List[Dict[str, Any]]:
    return [get_theme(i) for i in range(THEME_COUNT)]
