"""
评分引擎异常定义
调用方传入非法参数时立即抛出；配对耗尽不属于异常，由 select_pair 返回 None 表示
"""


class AnirankError(Exception):
    """评分引擎异常基类"""


class InvalidPair(AnirankError, ValueError):
    """同一条目与自身比较"""


class InvalidOutcome(AnirankError, ValueError):
    """比较结果不在 {0, 0.5, 1} 之内"""


class InsufficientItems(AnirankError, ValueError):
    """可配对条目少于2个"""


class UnknownItem(AnirankError, KeyError):
    """条目ID不在当前会话的评分表中"""
