"""
会话规划模块
根据条目数量、配对排除比例和外部评分正态性给出建议比较次数
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from .distribution import clamp
from .normality import score_normality

TARGET_AVG_GAMES = {
    'minimum': 2,
    'optimal': 4,
    'excessive': 7,
}

MAX_PRIORITY_BOOST = 2.5
MAX_SCARCITY = 2.5
SAME_SCORE_BOOST_RATIO = 0.75


@dataclass(frozen=True)
class ComparisonTargets:
    minimum: int = 0
    optimal: int = 0
    excessive: int = 0


@dataclass(frozen=True)
class SessionPlan:
    targets: ComparisonTargets
    pair_scale: float
    normality_multiplier: float
    normality: float

    @property
    def scale(self) -> float:
        return self.pair_scale * self.normality_multiplier


@dataclass(frozen=True)
class SamplingBoosts:
    priority_boost: float = 0.0
    same_score_boost: float = 0.0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def comparison_targets(n: int, scale: float) -> ComparisonTargets:
    """平均每条目 2/4/7 局换算为总比较次数（每次比较推进两个条目）"""
    if n <= 0 or scale <= 0:
        return ComparisonTargets()

    def total(avg_games: int) -> int:
        return max(1, _round_half_up(avg_games * n / 2 * scale))

    return ComparisonTargets(**{name: total(avg) for name, avg in TARGET_AVG_GAMES.items()})


def pair_exclusion_scale(
    n: int,
    upper_count: int,
    lower_count: int,
    assume_lower: bool = True
) -> float:
    """排除跨状态配对后，合法配对占全部配对的比例"""
    total_pairs = n * (n - 1) / 2
    if total_pairs <= 0 or not assume_lower or not upper_count or not lower_count:
        return 1.0
    return (total_pairs - upper_count * lower_count) / total_pairs


def normality_multiplier(normality: float) -> float:
    """外部评分越接近正态，需要的比较越少"""
    return clamp(1.2 - 0.9 * normality, 0.35, 1.2)


def plan_session(
    statuses: Iterable[Optional[str]],
    external_scores: Iterable[Optional[float]],
    assume_lower: bool = True,
    upper_status: str = 'Completed',
    lower_status: str = 'Dropped',
) -> SessionPlan:
    """汇总条目状态与外部评分，给出本次会话的比较目标"""
    statuses = list(statuses)
    n = len(statuses)
    upper_count = sum(1 for status in statuses if status == upper_status)
    lower_count = sum(1 for status in statuses if status == lower_status)

    normality = score_normality(external_scores).normality
    pair_scale = pair_exclusion_scale(n, upper_count, lower_count, assume_lower)
    multiplier = normality_multiplier(normality)

    return SessionPlan(
        targets=comparison_targets(n, pair_scale * multiplier),
        pair_scale=pair_scale,
        normality_multiplier=multiplier,
        normality=normality,
    )


def sampling_boosts(optimal: int, target: int, normality: float) -> SamplingBoosts:
    """
    计算采样优先级加成

    目标比较次数低于建议值（比较资源稀缺）或外部评分偏离正态时，
    欠采样分数段的条目获得更多关注。
    """
    scarcity = min(MAX_SCARCITY, max(1, optimal) / max(1, target))
    normality_gap = 1 - normality
    priority_boost = clamp((scarcity - 1) * 1.2 + normality_gap, 0.0, MAX_PRIORITY_BOOST)
    return SamplingBoosts(
        priority_boost=priority_boost,
        same_score_boost=priority_boost * SAME_SCORE_BOOST_RATIO,
    )
