"""Position scoring heuristics.

CTR-by-position table, a position -> score curve and the aggregates built
on top of them (overall score, share of voice, keyword difficulty).
Pure functions; positions are 1-based, None/0 means "not found".
"""

from __future__ import annotations

from app.analysis.types import Comparison, Difficulty, KeywordDifficulty, PositionCategory

# Estimated organic CTR (%) for the first page, from industry click studies
CTR_BY_POSITION: dict[int, float] = {
    1: 28.5,
    2: 15.7,
    3: 11.0,
    4: 8.0,
    5: 7.2,
    6: 5.1,
    7: 4.0,
    8: 3.2,
    9: 2.8,
    10: 2.5,
}


def get_ctr_by_position(position: int) -> float:
    """Estimated CTR (%) for a position; exponential decay past the first page."""
    if position <= 10:
        return CTR_BY_POSITION.get(position, 0.0)
    return max(0.1, 2.5 * 0.8 ** (position - 10))


def calculate_advanced_score(
    position: int | None,
    *,
    non_linear: bool = True,
    penalty_not_found: float = 0,
) -> float:
    """Map a position to a 0-100 score.

    The non-linear curve weights the top 3 heavily:
        1 -> 100, 2..3 -> 95 - 8*(p-1) (>= 75), 4..10 -> 75 - 5*(p-3) (>= 40),
        11..20 -> 40 - 2.5*(p-10) (>= 15), beyond -> 15 - 0.3*(p-20) (>= 1).
    The linear (legacy) mode is a step function 100/90/80/70/50.
    """
    if not position:
        return penalty_not_found

    if non_linear:
        if position == 1:
            return 100
        if position <= 3:
            return max(75, 95 - (position - 1) * 8)
        if position <= 10:
            return max(40, 75 - (position - 3) * 5)
        if position <= 20:
            return max(15, 40 - (position - 10) * 2.5)
        return max(1, 15 - (position - 20) * 0.3)

    if position == 1:
        return 100
    if position <= 3:
        return 90
    if position <= 5:
        return 80
    if position <= 10:
        return 70
    return 50


def calculate_overall_score(positions: list[int | None], *, non_linear: bool = True) -> int:
    """Average score over the keywords where the domain was found."""
    found = [p for p in positions if p is not None]
    if not found:
        return 0
    total = sum(calculate_advanced_score(p, non_linear=non_linear) for p in found)
    return round(total / len(found))


def get_position_category(position: int | None) -> PositionCategory:
    if not position:
        return PositionCategory.NOT_FOUND
    if position == 1:
        return PositionCategory.TOP1
    if position <= 3:
        return PositionCategory.TOP3
    if position <= 10:
        return PositionCategory.TOP10
    return PositionCategory.PAGE2


def calculate_share_of_voice(keyword_data: list[dict]) -> int:
    """Volume-weighted visibility (%) across a keyword set.

    ``keyword_data`` items carry ``position`` (int | None) and ``search_volume``.
    """
    total_volume = sum(item.get("search_volume") or 0 for item in keyword_data)
    if total_volume == 0:
        return 0

    weighted = 0.0
    for item in keyword_data:
        position = item.get("position")
        if not position:
            continue
        weighted += (item.get("search_volume") or 0) * get_ctr_by_position(position) / 100

    return round(weighted / total_volume * 100)


def compare_positions(position1: int | None, position2: int | None) -> Comparison:
    """Head-to-head from the first domain's point of view."""
    if not position1 and not position2:
        return Comparison.NO_DATA
    if not position1:
        return Comparison.LOSS
    if not position2:
        return Comparison.WIN
    if position1 < position2:
        return Comparison.WIN
    if position1 > position2:
        return Comparison.LOSS
    return Comparison.TIE


def calculate_keyword_difficulty(competitor_positions: list[int]) -> KeywordDifficulty:
    """Classify how hard a keyword is from where competitors rank on it.

    Only first-page competitors count: more of them, and higher up, means harder.
    """
    top = [p for p in competitor_positions if p <= 10]
    average = sum(top) / len(top) if top else 50
    score = min(100, len(top) * 10 + (50 - average) * 2)

    if score < 30:
        return KeywordDifficulty(Difficulty.LOW, score, "Low competition, good opportunity")
    if score < 60:
        return KeywordDifficulty(Difficulty.MEDIUM, score, "Moderate competition, average effort needed")
    if score < 80:
        return KeywordDifficulty(Difficulty.HIGH, score, "High competition, significant effort needed")
    return KeywordDifficulty(Difficulty.VERY_HIGH, score, "Extreme competition, major investment needed")
