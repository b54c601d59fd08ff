"""
评分编排器模块
协调配对策略、ELO评分表、会话规划与结果融合，编排整个排名会话
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from anirank.core.catalog import CatalogItem
from anirank.utils.logger import get_logger

from .blending import (
    BlendingParameters,
    ResultRow,
    build_results,
    completion_ratio,
    compute_elo_weight,
    solve_percentile_shift,
)
from .distribution import NormalFit, fit_normal, percentile
from .normality import priority_by_item, score_normality
from .pairing_strategies import AdaptivePairingStrategy, status_boundary_rule
from .random_source import DeterministicRandom
from .rating_algorithms import (
    DEFAULT_INITIAL_RATING,
    EloState,
    ItemId,
    create_state,
    record_outcome,
    record_skip,
)
from .session_planner import SamplingBoosts, SessionPlan, plan_session, sampling_boosts

DEFAULT_SCORE_MEAN = 5.5
NO_PAIR_MESSAGE = "当前设置下没有可用的配对"


@dataclass(frozen=True)
class AutoDecision:
    outcome: float
    reason: str


def decide_from_scores(left: CatalogItem, right: CatalogItem) -> Optional[AutoDecision]:
    """
    按外部评分自动判定

    评分不同时高分者胜；评分相同但状态不同判为平局；状态与评分都相同时无法自动判定。
    """
    left_score = left.external_score or 0
    right_score = right.external_score or 0
    if (left.status or '') == (right.status or '') and left_score == right_score:
        return None
    if left_score != right_score:
        return AutoDecision(outcome=1 if left_score > right_score else 0, reason="外部评分较高者胜")
    return AutoDecision(outcome=0.5, reason="外部评分相同")


class ScoringOrchestrator:
    """排名会话编排器: 规划比较目标、抽取配对、记录结果并生成最终排名"""

    def __init__(
        self,
        items: Sequence[CatalogItem],
        k_factor: float = 32,
        avoid_repeats: bool = True,
        assume_lower: bool = True,
        comparisons_target: Optional[int] = None,
        seed: Optional[int] = None,
        initial_rating: float = DEFAULT_INITIAL_RATING,
        upper_status: str = 'Completed',
        lower_status: str = 'Dropped',
        logger: Any = None,
    ):
        self.logger = logger or get_logger(__name__)
        self.items: Dict[ItemId, CatalogItem] = {item.item_id: item for item in items}
        self.item_ids: List[ItemId] = list(self.items)
        self.k_factor = k_factor
        self.avoid_repeats = avoid_repeats
        self.assume_lower = assume_lower
        self.upper_status = upper_status
        self.lower_status = lower_status
        self.seed = seed if seed is not None else int(time.time() * 1000)

        self.plan: SessionPlan = plan_session(
            statuses=[item.status for item in self.items.values()],
            external_scores=[item.external_score for item in self.items.values()],
            assume_lower=assume_lower,
            upper_status=upper_status,
            lower_status=lower_status,
        )
        self.comparisons_target = (
            comparisons_target if comparisons_target is not None else self.plan.targets.optimal
        )

        allowed = None
        if assume_lower:
            allowed = status_boundary_rule(
                {item_id: item.status for item_id, item in self.items.items()},
                upper_status=upper_status,
                lower_status=lower_status,
            )
        self.strategy = AdaptivePairingStrategy(
            rng=DeterministicRandom(self.seed),
            avoid_repeats=avoid_repeats,
            allowed=allowed,
        )
        self.boosts = self._configure_priorities()

        self.state: EloState = create_state(self.item_ids, k_factor, initial_rating)
        self.current_pair: Optional[Tuple[ItemId, ItemId]] = None
        self.auto_decisions = 0
        self.exhausted = False

        self.logger.info(
            f"排名会话已创建: 条目数 {len(self.item_ids)}, K={k_factor}, "
            f"目标比较次数 {self.comparisons_target} "
            f"(建议: {self.plan.targets.minimum}/{self.plan.targets.optimal}/{self.plan.targets.excessive}), "
            f"外部评分正态性 {self.plan.normality:.3f}"
        )

    def _configure_priorities(self) -> SamplingBoosts:
        """根据外部评分分布设置欠采样分数段的优先级"""
        score_by_id = {
            item_id: item.external_score if item.has_score else None
            for item_id, item in self.items.items()
        }
        if not any(score is not None for score in score_by_id.values()):
            boosts = SamplingBoosts()
        else:
            boosts = sampling_boosts(
                self.plan.targets.optimal, self.comparisons_target, self.plan.normality
            )
        self.strategy.set_priorities(
            priority_by_id=priority_by_item(score_by_id),
            score_by_id=score_by_id,
            priority_boost=boosts.priority_boost,
            same_score_boost=boosts.same_score_boost,
        )
        self.logger.debug(
            f"采样加成: priority_boost={boosts.priority_boost:.3f}, "
            f"same_score_boost={boosts.same_score_boost:.3f}"
        )
        return boosts

    @property
    def rng(self) -> DeterministicRandom:
        return self.strategy.rng

    @property
    def is_done(self) -> bool:
        return self.state.comparisons >= self.comparisons_target

    @property
    def status_tier(self) -> Optional[Dict[str, int]]:
        return {self.lower_status: -1} if self.assume_lower else None

    def next_pair(self) -> Optional[Tuple[ItemId, ItemId]]:
        """返回当前待比较的配对（没有时重新抽取），配对耗尽时返回 None"""
        if self.current_pair is not None:
            return self.current_pair

        pair = self.strategy.next_pair(self.state, self.item_ids)
        if pair is None:
            self.exhausted = True
            self.logger.warning(f"{NO_PAIR_MESSAGE} (已比较 {self.state.comparisons} 次)")
            return None

        self.exhausted = False
        self.current_pair = pair
        return pair

    def record(self, outcome_for_a: float) -> EloState:
        """记录当前配对的结果并抽取下一组"""
        pair = self.next_pair()
        if pair is None:
            raise RuntimeError(NO_PAIR_MESSAGE)
        a_id, b_id = pair

        old_a = self.state.rating_for(a_id).value
        old_b = self.state.rating_for(b_id).value
        self.state = record_outcome(self.state, a_id, b_id, outcome_for_a)
        self.logger.debug(
            f"评分更新: {a_id}({old_a:.1f}->{self.state.rating_for(a_id).value:.1f}) vs "
            f"{b_id}({old_b:.1f}->{self.state.rating_for(b_id).value:.1f}), A方结果: {outcome_for_a}"
        )

        if self.state.comparisons == self.comparisons_target:
            self.logger.info(f"已达到目标比较次数 {self.comparisons_target}")

        self.current_pair = None
        self.next_pair()
        return self.state

    def auto_decision(self) -> Optional[AutoDecision]:
        """当前配对的自动判定（不可判定时为 None）"""
        pair = self.current_pair
        if pair is None:
            return None
        return decide_from_scores(self.items[pair[0]], self.items[pair[1]])

    def apply_auto_decision(self) -> bool:
        decision = self.auto_decision()
        if decision is None:
            return False
        self.auto_decisions += 1
        self.record(decision.outcome)
        return True

    def skip(self) -> EloState:
        """跳过当前配对（不更新评分）"""
        self.state = record_skip(self.state)
        self.current_pair = None
        self.next_pair()
        return self.state

    def get_progress(self) -> Dict[str, Any]:
        target = self.comparisons_target
        return {
            'comparisons': self.state.comparisons,
            'skips': self.state.skips,
            'auto_decisions': self.auto_decisions,
            'target': target,
            'progress': min(1.0, self.state.comparisons / target) if target > 0 else 1.0,
            'exhausted': self.exhausted,
        }

    # ==================== 结果生成 ====================

    def final_fit(self) -> NormalFit:
        return fit_normal([rating.value for rating in self.state.ratings.values()])

    def default_score_mean(self) -> float:
        """外部评分均值（保留两位小数），无评分时为 5.5"""
        scores = [item.external_score for item in self.items.values() if item.has_score]
        if not scores:
            return DEFAULT_SCORE_MEAN
        return round(sum(scores) / len(scores), 2)

    def elo_weight(self) -> float:
        ratio = completion_ratio(self.state.comparisons, self.plan.targets.excessive)
        return compute_elo_weight(ratio, self.plan.normality)

    def blending_parameters(self) -> BlendingParameters:
        external = score_normality(item.external_score for item in self.items.values())
        return BlendingParameters(
            normality=self.plan.normality,
            completion_ratio=completion_ratio(self.state.comparisons, self.plan.targets.excessive),
            external_fit=external.fit,
            total_comparisons=self.state.comparisons,
            item_count=len(self.item_ids),
        )

    def percentile_shift(self, score_mean_target: Optional[float] = None) -> float:
        """求解使最终平均分接近目标均值的百分位偏移"""
        fit = self.final_fit()
        base = [percentile(rating.value, fit) for rating in self.state.ratings.values()]
        target = score_mean_target if score_mean_target is not None else self.default_score_mean()
        return solve_percentile_shift(base, target)

    def build_results(
        self,
        score_mean_target: Optional[float] = None,
        percentile_shift: Optional[float] = None,
    ) -> List[ResultRow]:
        """生成最终排名；显式给定 percentile_shift 时不再按目标均值求解"""
        if percentile_shift is None:
            percentile_shift = self.percentile_shift(score_mean_target)
        results = build_results(
            self.items,
            self.state,
            self.final_fit(),
            status_tier=self.status_tier,
            percentile_shift=percentile_shift,
            blending=self.blending_parameters(),
        )
        self.logger.info(f"已生成排名结果: {len(results)} 个条目, 百分位偏移 {percentile_shift:.4f}")
        return results

    def results_metadata(
        self,
        score_mean_target: Optional[float] = None,
        percentile_shift: Optional[float] = None,
        **extra: Any,
    ) -> Dict[str, Any]:
        """导出用的元数据"""
        fit = self.final_fit()
        target = score_mean_target if score_mean_target is not None else self.default_score_mean()
        if percentile_shift is None:
            percentile_shift = self.percentile_shift(target)
        elo_weight = self.elo_weight()
        metadata = {
            **extra,
            'comparisons': self.state.comparisons,
            'skipped': self.state.skips,
            'auto_decisions': self.auto_decisions,
            'elo_k_factor': self.state.k_factor,
            'elo_initial_rating': self.state.initial_rating,
            'normal_fit_mu': fit.mu,
            'normal_fit_sigma': fit.sigma,
            'score_mean_target': target,
            'percentile_shift': percentile_shift,
            'assume_dropped_lower': self.assume_lower,
            'status_tier': self.status_tier,
            'mal_score_normality': self.plan.normality,
            'normality_multiplier': self.plan.normality_multiplier,
            'elo_weight': elo_weight,
            'mal_weight': 1 - elo_weight,
            'seed': self.seed,
        }
        return metadata
