"""
配对策略模块
自适应配对: 优先少比较的条目、偏向评分接近的对手、避免重复，并遵守外部合法性约束
"""

from dataclasses import dataclass
from typing import Callable, Hashable, List, Mapping, Optional, Sequence, Tuple

from .errors import InsufficientItems
from .random_source import DeterministicRandom, weighted_choice
from .rating_algorithms import EloState, ItemId, pair_key

CANDIDATE_POOL_SIZE = 60
CLOSENESS_SCALE = 100.0
DEFAULT_MAX_ATTEMPTS = 200

PairRule = Callable[[ItemId, ItemId], bool]


@dataclass
class PairSelectionOptions:
    """配对参数；priority_by_id 为各条目所在分数段的欠采样程度（0-1）"""
    rng: DeterministicRandom
    avoid_repeats: bool = True
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    priority_by_id: Optional[Mapping[ItemId, float]] = None
    priority_boost: float = 0.0
    score_by_id: Optional[Mapping[ItemId, Optional[float]]] = None
    same_score_boost: float = 0.0
    allowed: Optional[PairRule] = None


def allow_all(a_id: ItemId, b_id: ItemId) -> bool:
    return True


def status_boundary_rule(
    status_by_id: Mapping[ItemId, Optional[str]],
    upper_status: str = 'Completed',
    lower_status: str = 'Dropped',
) -> PairRule:
    """禁止跨越 "假定更低" 边界的比较（例如已看完 vs 已弃坑）"""
    boundary = {upper_status, lower_status}

    def allowed(a_id: ItemId, b_id: ItemId) -> bool:
        statuses = {status_by_id.get(a_id), status_by_id.get(b_id)}
        return statuses != boundary

    return allowed


def _base_weight(state: EloState, item_id: ItemId, options: PairSelectionOptions) -> float:
    base = 1 / (1 + state.rating_for(item_id).games)
    if not options.priority_by_id or options.priority_boost <= 0:
        return base
    priority = options.priority_by_id.get(item_id, 0.0)
    return base * (1 + options.priority_boost * priority)


def _draw_pair(
    state: EloState,
    item_ids: Sequence[ItemId],
    weights: Mapping[ItemId, float],
    options: PairSelectionOptions,
) -> Tuple[ItemId, ItemId]:
    rng = options.rng
    a_id = weighted_choice(item_ids, [weights[item_id] for item_id in item_ids], rng)
    a_rating = state.rating_for(a_id).value

    # sorted 为稳定排序，差值相同时保持输入顺序
    candidates = sorted(
        (item_id for item_id in item_ids if item_id != a_id),
        key=lambda item_id: abs(state.rating_for(item_id).value - a_rating),
    )[:CANDIDATE_POOL_SIZE]

    score_by_id = options.score_by_id
    score_a = score_by_id.get(a_id) if score_by_id else None
    same_score_factor = 1.0
    if score_a is not None:
        priority_a = (options.priority_by_id or {}).get(a_id, 0.0)
        same_score_factor = 1 + options.same_score_boost * priority_a

    candidate_weights = []
    for item_id in candidates:
        diff = abs(state.rating_for(item_id).value - a_rating)
        weight = weights[item_id] / (1 + diff / CLOSENESS_SCALE)
        if score_a is not None and score_by_id.get(item_id) == score_a:
            weight *= same_score_factor
        candidate_weights.append(weight)

    b_id = weighted_choice(candidates, candidate_weights, rng)
    return a_id, b_id


def enumerate_legal_pairs(
    item_ids: Sequence[ItemId],
    allowed: PairRule = allow_all,
) -> List[Tuple[ItemId, ItemId]]:
    """按输入顺序列出所有合法配对"""
    pairs = []
    for i, a_id in enumerate(item_ids):
        for b_id in item_ids[i + 1:]:
            if allowed(a_id, b_id):
                pairs.append((a_id, b_id))
    return pairs


def select_pair(
    state: EloState,
    item_ids: Sequence[ItemId],
    options: PairSelectionOptions,
) -> Optional[Tuple[ItemId, ItemId]]:
    """
    选择下一组比较

    先按权重抽取锚点与候选对手，最多重试 max_attempts 次以避开重复或非法配对；
    仍失败时在全部合法配对中均匀抽取（优先未比较过的配对）。
    不存在任何合法配对时返回 None，调用方应视为当前设置下配对已耗尽。
    """
    item_ids = list(item_ids)
    if len(item_ids) < 2:
        raise InsufficientItems(f"至少需要2个条目才能配对，实际为 {len(item_ids)} 个")

    allowed = options.allowed or allow_all
    weights = {item_id: _base_weight(state, item_id, options) for item_id in item_ids}

    for _ in range(options.max_attempts):
        a_id, b_id = _draw_pair(state, item_ids, weights, options)
        if options.avoid_repeats and pair_key(a_id, b_id) in state.pair_history:
            continue
        if not allowed(a_id, b_id):
            continue
        return a_id, b_id

    legal = enumerate_legal_pairs(item_ids, allowed)
    if options.avoid_repeats:
        unseen = [pair for pair in legal if pair_key(*pair) not in state.pair_history]
        legal = unseen or legal
    if not legal:
        return None
    return legal[options.rng.next_index(len(legal))]


class AdaptivePairingStrategy:
    """自适应配对策略: 绑定随机源、合法性规则与优先级参数，供会话反复调用"""

    def __init__(
        self,
        rng: DeterministicRandom,
        avoid_repeats: bool = True,
        allowed: Optional[PairRule] = None,
        max_attempts: int = 250,
    ):
        self.rng = rng
        self.avoid_repeats = avoid_repeats
        self.allowed = allowed
        self.max_attempts = max_attempts
        self.priority_by_id: Optional[Mapping[Hashable, float]] = None
        self.score_by_id: Optional[Mapping[Hashable, Optional[float]]] = None
        self.priority_boost = 0.0
        self.same_score_boost = 0.0

    def set_priorities(
        self,
        priority_by_id: Mapping[Hashable, float],
        score_by_id: Mapping[Hashable, Optional[float]],
        priority_boost: float,
        same_score_boost: float,
    ):
        """设置分数段优先级及加成系数"""
        self.priority_by_id = priority_by_id
        self.score_by_id = score_by_id
        self.priority_boost = priority_boost
        self.same_score_boost = same_score_boost

    def options(self) -> PairSelectionOptions:
        return PairSelectionOptions(
            rng=self.rng,
            avoid_repeats=self.avoid_repeats,
            max_attempts=self.max_attempts,
            priority_by_id=self.priority_by_id,
            priority_boost=self.priority_boost,
            score_by_id=self.score_by_id,
            same_score_boost=self.same_score_boost,
            allowed=self.allowed,
        )

    def next_pair(
        self,
        state: EloState,
        item_ids: Sequence[ItemId],
    ) -> Optional[Tuple[ItemId, ItemId]]:
        return select_pair(state, item_ids, self.options())
