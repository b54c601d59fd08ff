"""
正态性评估模块
衡量外部评分直方图与其自身正态拟合的接近程度，并给出各分数段的采样优先级
"""

from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .distribution import NormalFit, clamp, fit_normal, normal_cdf

SCORE_BUCKETS = tuple(range(1, 11))
MIN_SAMPLES = 10
NEUTRAL_NORMALITY = 0.5


@dataclass(frozen=True)
class NormalitySummary:
    scores: Tuple[int, ...]
    fit: NormalFit
    normality: float


def valid_scores(scores: Iterable[Optional[float]]) -> List[int]:
    """只保留 1-10 的整数评分（0 或缺失视为无评分）"""
    result = []
    for score in scores:
        if score is None:
            continue
        if float(score).is_integer() and 1 <= score <= 10:
            result.append(int(score))
    return result


def observed_frequencies(scores: Sequence[int]) -> np.ndarray:
    """各分数段的观测频率"""
    if not scores:
        return np.zeros(len(SCORE_BUCKETS))
    counts = np.bincount(np.asarray(scores, dtype=int), minlength=11)[1:11]
    return counts / len(scores)


def expected_frequencies(fit: NormalFit) -> np.ndarray:
    """拟合正态在 [b-0.5, b+0.5] 区间上的预测频率，退化分布全为0"""
    if fit.sigma <= 0:
        return np.zeros(len(SCORE_BUCKETS))
    return np.array([
        normal_cdf((bucket + 0.5 - fit.mu) / fit.sigma)
        - normal_cdf((bucket - 0.5 - fit.mu) / fit.sigma)
        for bucket in SCORE_BUCKETS
    ])


def score_normality(scores: Iterable[Optional[float]]) -> NormalitySummary:
    """
    计算外部评分的正态性（0-1）

    样本少于10个时统一返回中性值0.5（即使全部相同）；
    样本充足但标准差为0时返回0；否则为 1 - L1/2。
    """
    kept = valid_scores(scores)
    fit = fit_normal(kept)
    if len(kept) < MIN_SAMPLES:
        return NormalitySummary(tuple(kept), fit, NEUTRAL_NORMALITY)
    if fit.sigma <= 0:
        return NormalitySummary(tuple(kept), fit, 0.0)

    l1 = float(np.abs(observed_frequencies(kept) - expected_frequencies(fit)).sum())
    return NormalitySummary(tuple(kept), fit, clamp(1 - l1 / 2, 0.0, 1.0))


def bucket_priorities(scores: Iterable[Optional[float]]) -> Dict[int, float]:
    """各分数段的优先级: 观测频率超出正态预测的部分，按最大偏差归一化到 [0, 1]"""
    kept = valid_scores(scores)
    if not kept:
        return {bucket: 0.0 for bucket in SCORE_BUCKETS}

    fit = fit_normal(kept)
    deviations = np.maximum(0.0, observed_frequencies(kept) - expected_frequencies(fit))
    max_deviation = float(deviations.max())
    return {
        bucket: float(deviations[idx] / max_deviation) if max_deviation > 0 else 0.0
        for idx, bucket in enumerate(SCORE_BUCKETS)
    }


def priority_by_item(score_by_id: Mapping[Hashable, Optional[float]]) -> Dict[Hashable, float]:
    """将分数段优先级映射到条目上（无评分条目优先级为0）"""
    priorities = bucket_priorities(score_by_id.values())
    result = {}
    for item_id, score in score_by_id.items():
        kept = valid_scores([score])
        result[item_id] = priorities[kept[0]] if kept else 0.0
    return result


def build_normality_line(
    scores: Sequence[float],
    fit: NormalFit,
    points: int = 91
) -> List[Dict[str, float]]:
    """用户评分的核密度曲线与理想正态曲线（各自缩放到最大值1），x 取 1.0 到 10.0"""
    xs = 1 + np.arange(points) * 0.1
    arr = np.asarray(scores, dtype=float)

    if arr.size:
        bandwidth = 0.8
        if fit.sigma > 0 and arr.size > 1:
            bandwidth = 1.06 * fit.sigma * arr.size ** -0.2
        bandwidth = clamp(bandwidth, 0.5, 1.5)
        diffs = xs[:, None] - arr[None, :]
        user = np.exp(-diffs ** 2 / (2 * bandwidth ** 2)).sum(axis=1)
        mean = float(arr.mean())
    else:
        user = np.zeros_like(xs)
        mean = fit.mu

    sigma = fit.sigma if fit.sigma > 0 else 1.0
    ideal = np.exp(-((xs - mean) ** 2) / (2 * sigma ** 2))

    if user.max() > 0:
        user = user / user.max()
    if ideal.max() > 0:
        ideal = ideal / ideal.max()

    return [
        {'x': round(float(x), 1), 'user': float(u), 'ideal': float(i)}
        for x, u, i in zip(xs, user, ideal)
    ]
