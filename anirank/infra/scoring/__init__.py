"""
评分系统基础设施
提供随机源、ELO评分表、分布拟合、正态性评估、配对策略、会话规划、结果融合和评分编排器
"""

from .errors import (
    AnirankError,
    InvalidPair,
    InvalidOutcome,
    InsufficientItems,
    UnknownItem,
)
from .random_source import DeterministicRandom, weighted_choice
from .rating_algorithms import (
    ELORatingAlgorithm,
    EloState,
    Rating,
    create_state,
    expected_score,
    pair_key,
    record_outcome,
    record_skip,
)
from .distribution import (
    NormalFit,
    fit_normal,
    normal_cdf,
    percentile,
    score10_from_percentile,
    score10_from_value,
)
from .normality import (
    NormalitySummary,
    bucket_priorities,
    build_normality_line,
    priority_by_item,
    score_normality,
)
from .pairing_strategies import (
    AdaptivePairingStrategy,
    PairSelectionOptions,
    select_pair,
    status_boundary_rule,
)
from .session_planner import (
    ComparisonTargets,
    SessionPlan,
    comparison_targets,
    normality_multiplier,
    pair_exclusion_scale,
    plan_session,
    sampling_boosts,
)
from .blending import (
    BlendingParameters,
    ResultRow,
    build_results,
    compute_elo_weight,
    solve_percentile_shift,
)
from .scoring_orchestrator import ScoringOrchestrator

__all__ = [
    # 异常
    'AnirankError',
    'InvalidPair',
    'InvalidOutcome',
    'InsufficientItems',
    'UnknownItem',
    # 随机源
    'DeterministicRandom',
    'weighted_choice',
    # 评分表
    'ELORatingAlgorithm',
    'EloState',
    'Rating',
    'create_state',
    'expected_score',
    'pair_key',
    'record_outcome',
    'record_skip',
    # 分布拟合
    'NormalFit',
    'fit_normal',
    'normal_cdf',
    'percentile',
    'score10_from_percentile',
    'score10_from_value',
    # 正态性
    'NormalitySummary',
    'bucket_priorities',
    'build_normality_line',
    'priority_by_item',
    'score_normality',
    # 配对策略
    'AdaptivePairingStrategy',
    'PairSelectionOptions',
    'select_pair',
    'status_boundary_rule',
    # 会话规划
    'ComparisonTargets',
    'SessionPlan',
    'comparison_targets',
    'normality_multiplier',
    'pair_exclusion_scale',
    'plan_session',
    'sampling_boosts',
    # 融合与排名
    'BlendingParameters',
    'ResultRow',
    'build_results',
    'compute_elo_weight',
    'solve_percentile_shift',
    # 评分编排器
    'ScoringOrchestrator',
]
