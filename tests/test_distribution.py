"""
分布拟合单元测试
"""

import math

import pytest

from anirank.infra.scoring.distribution import (
    NormalFit,
    fit_normal,
    normal_cdf,
    percentile,
    score10_from_percentile,
    score10_from_value,
)


def test_fit_normal_empty():
    """测试空输入"""
    assert fit_normal([]) == NormalFit(mu=0, sigma=0)


def test_fit_normal_single_value():
    """测试单个值时标准差为0"""
    assert fit_normal([7.5]) == NormalFit(mu=7.5, sigma=0)


def test_fit_normal_population_std():
    """测试使用总体标准差（除以 n）"""
    fit = fit_normal([1, 2, 3, 4, 5])

    assert fit.mu == pytest.approx(3)
    assert fit.sigma == pytest.approx(math.sqrt(2))


def test_fit_normal_identical_values():
    """测试值全部相同时退化"""
    fit = fit_normal([4, 4, 4, 4])

    assert fit.mu == 4
    assert fit.sigma == 0


def test_normal_cdf_center():
    """测试 cdf(0) == 0.5"""
    assert normal_cdf(0) == 0.5


@pytest.mark.parametrize("z", [0.1, 0.5, 1, 1.96, 2.5, 4, 8])
def test_normal_cdf_symmetry(z):
    """测试 cdf(z) + cdf(-z) == 1"""
    assert normal_cdf(z) + normal_cdf(-z) == pytest.approx(1.0, abs=1e-12)


@pytest.mark.parametrize("z,expected", [(1, 0.8413447461), (1.96, 0.9750021049), (-2, 0.0227501319)])
def test_normal_cdf_accuracy(z, expected):
    """测试近似精度约 1e-7"""
    assert normal_cdf(z) == pytest.approx(expected, abs=2e-7)


def test_percentile_degenerate_fit():
    """测试 sigma 为0时百分位为0.5"""
    for value in (-100, 0, 1500, 99999):
        assert percentile(value, NormalFit(mu=1500, sigma=0)) == 0.5


def test_percentile_values():
    """测试百分位计算"""
    fit = NormalFit(mu=1500, sigma=100)

    assert percentile(1500, fit) == 0.5
    assert percentile(1600, fit) == pytest.approx(0.8413447, abs=1e-6)
    assert 0 <= percentile(-1e9, fit) <= percentile(1e9, fit) <= 1


def test_score10_boundaries():
    """测试边界值"""
    assert score10_from_percentile(0) == 1
    assert score10_from_percentile(-0.5) == 1
    assert score10_from_percentile(1) == 10
    assert score10_from_percentile(1.5) == 10


def test_score10_ceiling_buckets():
    """测试向上取整：0.10 属于第1档，0.11 属于第2档"""
    assert score10_from_percentile(0.05) == 1
    assert score10_from_percentile(0.10) == 1
    assert score10_from_percentile(0.11) == 2
    assert score10_from_percentile(0.5) == 5
    assert score10_from_percentile(0.51) == 6
    assert score10_from_percentile(0.95) == 10


def test_score10_monotonic():
    """测试随百分位单调不减"""
    scores = [score10_from_percentile(i / 1000) for i in range(-10, 1011)]

    assert all(left <= right for left, right in zip(scores, scores[1:]))
    assert set(scores) == set(range(1, 11))


def test_score10_from_value():
    """测试由原始值直接换算分数"""
    fit = NormalFit(mu=1500, sigma=100)

    assert score10_from_value(1500, fit) == 5
    assert score10_from_value(1800, fit) == 10
    assert score10_from_value(1200, fit) == 1
