"""
评分算法模块
ELO评分与会话评分表（不可变更新，便于回放/撤销）
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, FrozenSet, Hashable, Iterable, Mapping, Tuple

from .errors import InvalidOutcome, InvalidPair, UnknownItem

ItemId = Hashable

DEFAULT_INITIAL_RATING = 1500.0
VALID_OUTCOMES = (0, 0.5, 1)


@dataclass(frozen=True)
class Rating:
    """单个条目的ELO评分及对局统计（games == wins + losses + ties）"""
    value: float
    games: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0


@dataclass(frozen=True)
class EloState:
    """会话评分表: 条目集合在创建时固定，每次记录结果返回新的实例"""
    ratings: Mapping[ItemId, Rating]
    k_factor: float
    initial_rating: float = DEFAULT_INITIAL_RATING
    comparisons: int = 0
    skips: int = 0
    pair_history: FrozenSet[Tuple[ItemId, ItemId]] = field(default_factory=frozenset)

    def rating_for(self, item_id: ItemId) -> Rating:
        try:
            return self.ratings[item_id]
        except KeyError:
            raise UnknownItem(item_id) from None

    def has_seen(self, a_id: ItemId, b_id: ItemId) -> bool:
        return pair_key(a_id, b_id) in self.pair_history


def pair_key(a_id: ItemId, b_id: ItemId) -> Tuple[ItemId, ItemId]:
    """无序配对的规范键（较小的ID在前的二元组）"""
    if _sort_key(b_id) < _sort_key(a_id):
        a_id, b_id = b_id, a_id
    return (a_id, b_id)


def _sort_key(item_id: ItemId) -> Tuple[int, object]:
    # 数值ID按数值排序，其它类型按字符串排序
    if isinstance(item_id, (int, float)) and not isinstance(item_id, bool):
        return (0, item_id)
    return (1, str(item_id))


class ELORatingAlgorithm:
    """ELO评分算法: new_rating = old_rating + K * (actual - expected)"""

    def __init__(
        self,
        k_factor: float = 32,
        logistic_constant: float = 400
    ):
        self.k_factor = k_factor
        self.logistic_constant = logistic_constant

    def get_expected_score(self, rating_a: float, rating_b: float) -> float:
        """
        计算期望得分

        公式: E_a = 1 / (1 + 10^((R_b - R_a) / logistic_constant))
        """
        return 1 / (1 + 10 ** ((rating_b - rating_a) / self.logistic_constant))

    def update_ratings(
        self,
        rating_a: Rating,
        rating_b: Rating,
        outcome_for_a: float
    ) -> Tuple[Rating, Rating]:
        """根据A方结果（1胜 / 0负 / 0.5平）同时更新两个条目的评分与统计"""
        expected_a = self.get_expected_score(rating_a.value, rating_b.value)
        expected_b = 1 - expected_a

        new_a = replace(
            rating_a,
            value=rating_a.value + self.k_factor * (outcome_for_a - expected_a),
            games=rating_a.games + 1,
        )
        new_b = replace(
            rating_b,
            value=rating_b.value + self.k_factor * ((1 - outcome_for_a) - expected_b),
            games=rating_b.games + 1,
        )

        if outcome_for_a == 1:
            new_a = replace(new_a, wins=new_a.wins + 1)
            new_b = replace(new_b, losses=new_b.losses + 1)
        elif outcome_for_a == 0:
            new_a = replace(new_a, losses=new_a.losses + 1)
            new_b = replace(new_b, wins=new_b.wins + 1)
        else:
            new_a = replace(new_a, ties=new_a.ties + 1)
            new_b = replace(new_b, ties=new_b.ties + 1)

        return new_a, new_b


def expected_score(rating_a: float, rating_b: float) -> float:
    """A对B的期望得分，满足 expected(a, b) + expected(b, a) == 1"""
    return ELORatingAlgorithm().get_expected_score(rating_a, rating_b)


def create_state(
    item_ids: Iterable[ItemId],
    k_factor: float,
    initial_rating: float = DEFAULT_INITIAL_RATING
) -> EloState:
    """为每个条目建立初始评分，计数器归零，历史为空"""
    ratings: Dict[ItemId, Rating] = {
        item_id: Rating(value=initial_rating) for item_id in item_ids
    }
    return EloState(
        ratings=MappingProxyType(ratings),
        k_factor=k_factor,
        initial_rating=initial_rating,
    )


def record_outcome(
    state: EloState,
    a_id: ItemId,
    b_id: ItemId,
    outcome_for_a: float
) -> EloState:
    """记录一次比较结果，返回新的评分表（输入状态保持不变）"""
    if a_id == b_id:
        raise InvalidPair(f"不能将条目与自身比较: {a_id}")
    if outcome_for_a not in VALID_OUTCOMES:
        raise InvalidOutcome(f"比较结果必须为 0、0.5 或 1，实际为: {outcome_for_a}")

    algorithm = ELORatingAlgorithm(k_factor=state.k_factor)
    new_a, new_b = algorithm.update_ratings(
        state.rating_for(a_id),
        state.rating_for(b_id),
        outcome_for_a,
    )

    ratings = dict(state.ratings)
    ratings[a_id] = new_a
    ratings[b_id] = new_b

    return replace(
        state,
        ratings=MappingProxyType(ratings),
        pair_history=state.pair_history | {pair_key(a_id, b_id)},
        comparisons=state.comparisons + 1,
    )


def record_skip(state: EloState) -> EloState:
    """记录一次跳过（不影响评分和比较次数）"""
    return replace(state, skips=state.skips + 1)
