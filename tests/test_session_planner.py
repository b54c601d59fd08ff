"""
会话规划单元测试
"""

import pytest

from anirank.infra.scoring.session_planner import (
    ComparisonTargets,
    comparison_targets,
    normality_multiplier,
    pair_exclusion_scale,
    plan_session,
    sampling_boosts,
)


def test_targets_zero_for_empty_or_zero_scale():
    """测试条目数或比例为0时目标全为0"""
    assert comparison_targets(0, 1.0) == ComparisonTargets(0, 0, 0)
    assert comparison_targets(-3, 1.0) == ComparisonTargets(0, 0, 0)
    assert comparison_targets(10, 0) == ComparisonTargets(0, 0, 0)


def test_targets_full_scale():
    """测试平均每条目 2/4/7 局换算为总比较次数"""
    assert comparison_targets(10, 1.0) == ComparisonTargets(minimum=10, optimal=20, excessive=35)


def test_targets_at_least_one():
    """测试目标至少为1"""
    assert comparison_targets(3, 0.1) == ComparisonTargets(minimum=1, optimal=1, excessive=1)


def test_targets_round_half_up():
    """测试 .5 向上取整"""
    # 2 * 5 / 2 * 0.5 = 2.5
    assert comparison_targets(5, 0.5).minimum == 3


def test_pair_exclusion_scale():
    """测试排除跨状态配对后的比例"""
    assert pair_exclusion_scale(4, 2, 2) == pytest.approx(1 / 3)
    assert pair_exclusion_scale(4, 2, 2, assume_lower=False) == 1.0
    assert pair_exclusion_scale(4, 4, 0) == 1.0
    assert pair_exclusion_scale(1, 1, 0) == 1.0


def test_normality_multiplier_clamped():
    """测试正态性系数的上下限"""
    assert normality_multiplier(0) == pytest.approx(1.2)
    assert normality_multiplier(0.5) == pytest.approx(0.75)
    assert normality_multiplier(1) == pytest.approx(0.35)
    assert normality_multiplier(-1) == pytest.approx(1.2)


def test_plan_session_combines_factors():
    """测试会话规划综合配对比例与正态性"""
    plan = plan_session(
        statuses=['Completed', 'Completed', 'Dropped', 'Dropped'],
        external_scores=[None, None, None, None],
    )

    assert plan.normality == 0.5
    assert plan.pair_scale == pytest.approx(1 / 3)
    assert plan.normality_multiplier == pytest.approx(0.75)
    assert plan.targets == comparison_targets(4, plan.scale)


def test_plan_session_without_assumption():
    """测试关闭状态假设时不排除配对"""
    plan = plan_session(
        statuses=['Completed', 'Dropped'] * 5,
        external_scores=[7] * 10,
        assume_lower=False,
    )

    assert plan.pair_scale == 1.0
    # 10个相同评分: 正态性为0，系数取上限
    assert plan.normality == 0
    assert plan.targets == comparison_targets(10, 1.2)


def test_sampling_boosts_no_scarcity_normal_scores():
    """测试目标充足且评分正态时无加成"""
    boosts = sampling_boosts(optimal=20, target=20, normality=1)

    assert boosts.priority_boost == 0
    assert boosts.same_score_boost == 0


def test_sampling_boosts_scarce_target():
    """测试目标低于建议值时加成提高"""
    boosts = sampling_boosts(optimal=20, target=10, normality=0.5)

    assert boosts.priority_boost == pytest.approx(1.7)
    assert boosts.same_score_boost == pytest.approx(1.275)


def test_sampling_boosts_capped():
    """测试加成上限"""
    assert sampling_boosts(optimal=100, target=1, normality=0).priority_boost == 2.5
