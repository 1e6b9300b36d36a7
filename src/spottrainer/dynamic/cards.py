from __future__ import annotations

import random
from functools import lru_cache

__all__ = [
    "ALL_COMBOS",
    "ALL_HANDS",
    "RANKS",
    "SUITS",
    "combo_cards",
    "combos_for_hand",
    "hand_matrix",
    "hand_name_for_combo",
    "max_combos",
    "random_combo",
]

RANKS = "AKQJT98765432"  # high to low
SUITS = "shdc"  # spades, hearts, diamonds, clubs


def hand_matrix() -> list[list[str]]:
    """13x13 grid: pairs on the diagonal, suited above it, offsuit below."""

    rows: list[list[str]] = []
    for i, high in enumerate(RANKS):
        row: list[str] = []
        for j, low in enumerate(RANKS):
            if i == j:
                row.append(high + low)
            elif i < j:
                row.append(f"{high}{low}s")
            else:
                row.append(f"{low}{high}o")
        rows.append(row)
    return rows


def max_combos(hand: str) -> int:
    if len(hand) < 2:
        return 0
    if hand[0] == hand[1]:
        return 6
    if hand.endswith("s"):
        return 4
    if hand.endswith("o"):
        return 12
    return 0


@lru_cache(maxsize=None)
def _combos(hand: str) -> tuple[str, ...]:
    if len(hand) < 2:
        return ()
    r1, r2 = hand[0], hand[1]
    combos: list[str] = []
    if r1 == r2:
        for i, first in enumerate(SUITS):
            for second in SUITS[i + 1 :]:
                # alphabetical suit order inside a pair, e.g. "AhAs"
                s1, s2 = sorted((first, second))
                combos.append(f"{r1}{s1}{r2}{s2}")
    elif len(hand) == 3 and hand[2] == "s":
        combos.extend(f"{r1}{suit}{r2}{suit}" for suit in SUITS)
    elif len(hand) == 3 and hand[2] == "o":
        for s1 in SUITS:
            for s2 in SUITS:
                if s1 != s2:
                    combos.append(f"{r1}{s1}{r2}{s2}")
    return tuple(combos)


def combos_for_hand(hand: str) -> list[str]:
    """Every specific two-card holding of a canonical hand name."""

    return list(_combos(hand))


def combo_cards(combo: str) -> tuple[str, str]:
    if len(combo) != 4:
        raise ValueError(f"combo must have four characters: {combo!r}")
    return combo[:2], combo[2:]


def hand_name_for_combo(combo: str) -> str:
    """Canonical hand name for a combo, e.g. ``"7s5h" -> "75o"``, ``"5h7s" -> "75o"``."""

    (r1, s1), (r2, s2) = combo_cards(combo)
    if r1 == r2:
        return r1 + r2
    if RANKS.index(r1) > RANKS.index(r2):
        r1, r2 = r2, r1
    return f"{r1}{r2}{'s' if s1 == s2 else 'o'}"


def random_combo(hand: str, rng: random.Random) -> str | None:
    combos = _combos(hand)
    if not combos:
        return None
    return rng.choice(combos)


ALL_HANDS: tuple[str, ...] = tuple(hand for row in hand_matrix() for hand in row)
ALL_COMBOS: tuple[str, ...] = tuple(combo for hand in ALL_HANDS for combo in _combos(hand))
