"""
正态性评估单元测试
"""

import pytest

from anirank.infra.scoring.distribution import NormalFit, fit_normal
from anirank.infra.scoring.normality import (
    bucket_priorities,
    build_normality_line,
    priority_by_item,
    score_normality,
    valid_scores,
)

BELL_SCORES = [3] + [4] * 2 + [5] * 4 + [6] * 6 + [7] * 4 + [8] * 2 + [9]
BIMODAL_SCORES = [1] * 10 + [10] * 10


def test_valid_scores_filters_out_of_range():
    """测试只保留1-10的整数评分"""
    assert valid_scores([0, None, 3, 11, 7.0, 5.5, -2, 10]) == [3, 7, 10]


def test_degenerate_scores_give_zero():
    """测试20个相同评分时正态性为0（退化而非中性）"""
    summary = score_normality([7] * 20)

    assert summary.fit.sigma == 0
    assert summary.normality == 0


def test_insufficient_samples_neutral():
    """测试样本少于10个时返回0.5"""
    assert score_normality([1, 10, 1, 10, 5]).normality == 0.5
    assert score_normality([]).normality == 0.5


def test_insufficient_degenerate_samples_still_neutral():
    """测试样本不足时即使全部相同也返回0.5"""
    assert score_normality([6] * 9).normality == 0.5


def test_zero_scores_are_ignored():
    """测试无评分（0）不计入样本"""
    summary = score_normality([0] * 30 + [5, 6, 7])

    assert summary.scores == (5, 6, 7)
    assert summary.normality == 0.5


def test_bell_shaped_scores_are_normal():
    """测试钟形分布的正态性较高"""
    summary = score_normality(BELL_SCORES)

    assert summary.fit.mu == pytest.approx(6)
    assert summary.normality > 0.85


def test_bimodal_scores_are_not_normal():
    """测试双峰分布的正态性较低"""
    assert score_normality(BIMODAL_SCORES).normality < 0.5


def test_normality_in_unit_interval():
    """测试正态性在 [0, 1] 内"""
    for scores in (BELL_SCORES, BIMODAL_SCORES, [1] * 15 + [2], list(range(1, 11)) * 3):
        assert 0 <= score_normality(scores).normality <= 1


def test_bucket_priorities_degenerate():
    """测试全部相同时该分数段优先级为1"""
    priorities = bucket_priorities([7] * 12)

    assert priorities[7] == 1.0
    assert all(priorities[b] == 0.0 for b in range(1, 11) if b != 7)


def test_bucket_priorities_empty():
    """测试无评分时优先级全为0"""
    assert set(bucket_priorities([]).values()) == {0.0}


def test_bucket_priorities_bimodal_peaks():
    """测试双峰分布中两端分数段被标记为欠采样"""
    priorities = bucket_priorities(BIMODAL_SCORES)

    assert max(priorities.values()) == pytest.approx(1.0)
    assert priorities[1] > 0.9
    assert priorities[10] > 0.9
    assert priorities[5] == 0.0


def test_priority_by_item():
    """测试条目优先级映射，无评分条目为0"""
    priorities = priority_by_item({'a': 7, 'b': 7, 'c': None, 'd': 0})

    assert priorities == {'a': 1.0, 'b': 1.0, 'c': 0.0, 'd': 0.0}


def test_normality_line_shape():
    """测试密度曲线的点数与缩放"""
    line = build_normality_line(BELL_SCORES, fit_normal(BELL_SCORES))

    assert len(line) == 91
    assert line[0]['x'] == 1.0
    assert line[-1]['x'] == 10.0
    assert max(point['user'] for point in line) == pytest.approx(1.0)
    assert max(point['ideal'] for point in line) == pytest.approx(1.0)


def test_normality_line_without_scores():
    """测试无评分时用户曲线全为0"""
    line = build_normality_line([], NormalFit(mu=0, sigma=0))

    assert all(point['user'] == 0 for point in line)
    assert max(point['ideal'] for point in line) == pytest.approx(1.0)
