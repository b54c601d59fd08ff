"""
分布拟合模块
正态分布拟合、百分位换算以及百分位到 1-10 分的映射
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

# Abramowitz & Stegun 7.1.26
_ERF_P = 0.3275911
_ERF_A = (0.254829592, -0.284496736, 1.421413741, -1.453152027, 1.061405429)


@dataclass(frozen=True)
class NormalFit:
    """正态拟合结果，sigma == 0 表示退化分布（值全相同或样本不足2个）"""
    mu: float
    sigma: float


def fit_normal(values: Sequence[float]) -> NormalFit:
    """拟合正态分布：均值 + 总体标准差（除以 n）"""
    if len(values) == 0:
        return NormalFit(mu=0.0, sigma=0.0)
    arr = np.asarray(values, dtype=float)
    mu = float(np.mean(arr))
    if arr.size == 1:
        return NormalFit(mu=mu, sigma=0.0)
    return NormalFit(mu=mu, sigma=float(np.std(arr, ddof=0)))


def _erf(x: float) -> float:
    if x == 0:
        return 0.0
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)
    t = 1 / (1 + _ERF_P * x)
    a1, a2, a3, a4, a5 = _ERF_A
    poly = (((a5 * t + a4) * t + a3) * t + a2) * t + a1
    return sign * (1 - poly * t * math.exp(-x * x))


def normal_cdf(z: float) -> float:
    """标准正态分布函数，cdf(0) == 0.5 且 cdf(z) + cdf(-z) == 1"""
    return 0.5 * (1 + _erf(z / math.sqrt(2)))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def percentile(value: float, fit: NormalFit) -> float:
    """值在拟合分布中的百分位（0-1），退化分布统一返回 0.5"""
    if fit.sigma <= 0:
        return 0.5
    return clamp(normal_cdf((value - fit.mu) / fit.sigma), 0.0, 1.0)


def score10_from_percentile(p: float) -> int:
    """百分位映射为 1-10 分（向上取整，0.10 -> 1，0.11 -> 2）"""
    if p <= 0:
        return 1
    if p >= 1:
        return 10
    return int(clamp(math.ceil(p * 10), 1, 10))


def score10_from_value(value: float, fit: NormalFit) -> int:
    return score10_from_percentile(percentile(value, fit))
