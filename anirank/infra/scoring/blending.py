"""
融合与排名模块
按完成度与单条目置信度融合 ELO 百分位与外部评分百分位，排序并给出 1-10 分
"""

import math
from dataclasses import dataclass
from typing import Hashable, List, Mapping, Optional, Sequence

from anirank.core.catalog import CatalogItem

from .distribution import NormalFit, clamp, percentile, score10_from_percentile
from .rating_algorithms import EloState, ItemId

SHIFT_SEARCH_ITERATIONS = 30
DEFAULT_EXPECTED_GAMES = 2.0


@dataclass(frozen=True)
class BlendingParameters:
    normality: float
    completion_ratio: float
    external_fit: NormalFit
    total_comparisons: int
    item_count: int


@dataclass(frozen=True)
class ResultRow:
    rank: int
    item_id: Hashable
    title: str
    status: Optional[str]
    external_score: Optional[int]
    elo: float
    games: int
    wins: int
    losses: int
    ties: int
    percentile: float
    score_1_10: int


def compute_elo_weight(completion_ratio: float, normality: float) -> float:
    """
    ELO 权重 = completion_ratio ^ (1 + (1 - normality))

    完成度为0时完全信任外部评分，达到目标时完全信任 ELO；
    外部评分越接近正态，权重随完成度上升越快。
    """
    ratio = clamp(completion_ratio, 0.0, 1.0)
    normality = clamp(normality, 0.0, 1.0)
    return ratio ** (1 + (1 - normality))


def completion_ratio(comparisons: int, excessive: int) -> float:
    """相对 "过量" 目标的完成度"""
    if excessive <= 0:
        return 0.0
    return min(1.0, comparisons / excessive)


def item_confidence(games: int, expected_games: float) -> float:
    """单条目置信度 1 - e^(-games / expected)：期望局数时约63%，两倍时约86%"""
    if expected_games <= 0 or games <= 0:
        return 0.0
    return 1 - math.exp(-games / expected_games)


def external_percentile(score: float, external_fit: NormalFit) -> float:
    """外部评分的百分位，退化分布时线性映射 (score - 1) / 9"""
    if external_fit.sigma <= 0:
        return (score - 1) / 9
    return percentile(score, external_fit)


def _has_external_score(score: Optional[float]) -> bool:
    return score is not None and score > 0


def build_results(
    items: Mapping[ItemId, CatalogItem],
    state: EloState,
    final_fit: NormalFit,
    status_tier: Optional[Mapping[str, int]] = None,
    percentile_shift: float = 0.0,
    blending: Optional[BlendingParameters] = None,
) -> List[ResultRow]:
    """生成排名结果: 先按状态层级降序，再按融合百分位降序"""
    global_elo_weight = (
        compute_elo_weight(blending.completion_ratio, blending.normality) if blending else 1.0
    )
    expected_games = (
        blending.total_comparisons * 2 / blending.item_count
        if blending and blending.item_count > 0
        else DEFAULT_EXPECTED_GAMES
    )

    entries = []
    for item_id, rating in state.ratings.items():
        item = items[item_id]
        elo_percentile = percentile(rating.value, final_fit)

        if blending and _has_external_score(item.external_score):
            effective_weight = global_elo_weight * item_confidence(rating.games, expected_games)
            blended = (
                effective_weight * elo_percentile
                + (1 - effective_weight) * external_percentile(item.external_score, blending.external_fit)
            )
        else:
            blended = elo_percentile

        tier = status_tier.get(item.status or '', 0) if status_tier else 0
        entries.append((tier, clamp(blended + percentile_shift, 0.0, 1.0), item_id, item, rating))

    entries.sort(key=lambda entry: (-entry[0], -entry[1]))

    return [
        ResultRow(
            rank=index + 1,
            item_id=item_id,
            title=item.title,
            status=item.status,
            external_score=item.external_score,
            elo=rating.value,
            games=rating.games,
            wins=rating.wins,
            losses=rating.losses,
            ties=rating.ties,
            percentile=p,
            score_1_10=score10_from_percentile(p),
        )
        for index, (_, p, item_id, item, rating) in enumerate(entries)
    ]


def solve_percentile_shift(base_percentiles: Sequence[float], target_mean: float) -> float:
    """二分搜索百分位偏移，使最终 1-10 分的均值最接近目标均值"""
    if not base_percentiles:
        return 0.0
    target = clamp(target_mean, 1.0, 10.0)

    def mean_for_shift(shift: float) -> float:
        total = sum(score10_from_percentile(clamp(p + shift, 0.0, 1.0)) for p in base_percentiles)
        return total / len(base_percentiles)

    low, high = -1.0, 1.0
    best_shift, best_diff = 0.0, math.inf
    for _ in range(SHIFT_SEARCH_ITERATIONS):
        mid = (low + high) / 2
        diff = mean_for_shift(mid) - target
        if abs(diff) < best_diff:
            best_diff = abs(diff)
            best_shift = mid
        if diff < 0:
            low = mid
        else:
            high = mid
    return best_shift
