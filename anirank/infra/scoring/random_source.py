"""
可复现随机源
Lehmer 乘同余生成器 + 加权抽样，保证相同种子得到相同的配对序列
"""

from typing import Sequence, TypeVar

T = TypeVar('T')

MODULUS = 2147483647  # 2^31 - 1
MULTIPLIER = 48271


class DeterministicRandom:
    """确定性随机数生成器: 状态显式传递，不依赖全局 random 模块"""

    def __init__(self, seed: int):
        state = int(seed) % MODULUS
        if state <= 0:
            state += MODULUS - 1
        self._state = state

    @property
    def state(self) -> int:
        return self._state

    def next_float(self) -> float:
        """返回 [0, 1) 区间内的下一个值"""
        self._state = (self._state * MULTIPLIER) % MODULUS
        return self._state / MODULUS

    def next_index(self, size: int) -> int:
        """在 [0, size) 中均匀抽取一个下标"""
        if size <= 0:
            raise ValueError("size 必须为正数")
        return min(size - 1, int(self.next_float() * size))


def weighted_choice(items: Sequence[T], weights: Sequence[float], rng: DeterministicRandom) -> T:
    """按权重抽取一个元素

    选取累计权重首次达到 ``u * total`` 的元素；总权重不为正时退化为均匀抽样，
    浮点误差导致未命中时返回最后一个元素。
    """
    if not items:
        raise ValueError("items 不能为空")

    total = sum(weights)
    if total <= 0:
        return items[rng.next_index(len(items))]

    target = rng.next_float() * total
    running = 0.0
    for item, weight in zip(items, weights):
        running += weight
        if target <= running:
            return item
    return items[-1]
