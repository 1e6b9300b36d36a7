"""Seat and position helpers shared across the trainer.

Seats are numbered in preflop action order, so the big blind is always the
last seat (``num_players - 1``) and the small blind the one before it.  The
hero-seat rules for each spot type live here as well, next to the naming
helpers they rely on.
"""

from __future__ import annotations

import random

__all__ = [
    "ANY",
    "RFI",
    "SPOT_TYPES",
    "VS_MULTIWAY",
    "VS_OPEN",
    "VS_SHOVE",
    "big_blind_seat",
    "hero_seats_for",
    "multiway_hero_seats",
    "position_name",
    "position_names",
    "shover_count",
]

RFI = "RFI"
VS_OPEN = "vs Open"
VS_SHOVE = "vs Shove"
VS_MULTIWAY = "vs Multiway"
ANY = "Any"

SPOT_TYPES = (RFI, VS_OPEN, VS_SHOVE, VS_MULTIWAY, ANY)

_POSITION_NAMES: dict[int, tuple[str, ...]] = {
    9: ("UTG", "UTG1", "UTG2", "LJ", "HJ", "CO", "BTN", "SB", "BB"),
    8: ("UTG", "UTG1", "LJ", "HJ", "CO", "BTN", "SB", "BB"),
    7: ("UTG", "LJ", "HJ", "CO", "BTN", "SB", "BB"),
    6: ("LJ", "HJ", "CO", "BTN", "SB", "BB"),
    5: ("HJ", "CO", "BTN", "SB", "BB"),
    4: ("CO", "BTN", "SB", "BB"),
    3: ("BTN", "SB", "BB"),
    2: ("BTN", "BB"),  # heads-up: the button posts the small blind
}


def position_names(num_players: int) -> tuple[str, ...]:
    names = _POSITION_NAMES.get(num_players)
    if names is None:
        return tuple(f"P{idx + 1}" for idx in range(num_players))
    return names


def position_name(seat: int, num_players: int) -> str:
    names = position_names(num_players)
    return names[seat] if 0 <= seat < len(names) else f"P{seat + 1}"


def big_blind_seat(num_players: int) -> int:
    return num_players - 1


def multiway_hero_seats(num_players: int) -> list[int]:
    """Late positions only: multiway all-ins need at least two seats acting first."""

    bb = big_blind_seat(num_players)
    if num_players <= 3:
        return [bb]
    sb = num_players - 2
    if num_players == 4:
        return [sb, bb]
    btn = num_players - 3
    if num_players == 5:
        return [bb, sb, btn]
    return [bb, sb, btn, num_players - 4]


def hero_seats_for(spot_type: str, num_players: int) -> list[int]:
    if num_players < 2:
        return []
    if spot_type == RFI:
        bb = big_blind_seat(num_players)
        return [seat for seat in range(num_players) if seat != bb]
    if spot_type in (VS_OPEN, VS_SHOVE):
        return list(range(1, num_players))
    if spot_type == VS_MULTIWAY:
        return multiway_hero_seats(num_players)
    if spot_type == ANY:
        return list(range(num_players))
    raise ValueError(f"unknown spot type {spot_type!r}")


def shover_count(max_shovers: int, rng: random.Random) -> int:
    """How many players jam ahead of the hero; two-way all-ins dominate."""

    if max_shovers < 2:
        return max_shovers
    roll = rng.random()
    if max_shovers >= 5:
        if roll < 0.70:
            return 2
        if roll < 0.85:
            return 3
        if roll < 0.95:
            return 4
        return 5
    if max_shovers == 4:
        if roll < 0.80:
            return 2
        if roll < 0.95:
            return 3
        return 4
    if max_shovers == 3:
        return 2 if roll < 0.80 else 3
    return 2
