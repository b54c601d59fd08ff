"""
配对策略单元测试
"""

from types import MappingProxyType

import pytest

from anirank.infra.scoring.errors import InsufficientItems
from anirank.infra.scoring.pairing_strategies import (
    AdaptivePairingStrategy,
    PairSelectionOptions,
    enumerate_legal_pairs,
    select_pair,
    status_boundary_rule,
)
from anirank.infra.scoring.random_source import DeterministicRandom
from anirank.infra.scoring.rating_algorithms import (
    EloState,
    Rating,
    create_state,
    pair_key,
    record_outcome,
)


def _state_with_ratings(values):
    """按给定评分构造评分表"""
    return EloState(
        ratings=MappingProxyType({item_id: Rating(value=v) for item_id, v in values.items()}),
        k_factor=32,
    )


def test_insufficient_items():
    """测试少于2个条目时报错"""
    state = create_state([1], k_factor=32)

    with pytest.raises(InsufficientItems):
        select_pair(state, [1], PairSelectionOptions(rng=DeterministicRandom(1)))
    with pytest.raises(InsufficientItems):
        select_pair(state, [], PairSelectionOptions(rng=DeterministicRandom(1)))


def test_never_pairs_item_with_itself():
    """测试不会返回相同条目"""
    ids = list(range(8))
    state = create_state(ids, k_factor=32)

    for seed in range(1, 200):
        a_id, b_id = select_pair(state, ids, PairSelectionOptions(rng=DeterministicRandom(seed)))
        assert a_id != b_id
        assert a_id in ids and b_id in ids


def test_same_seed_same_pair():
    """测试相同输入与种子得到相同配对"""
    ids = list(range(20))
    state = create_state(ids, k_factor=32)
    state = record_outcome(state, 0, 1, 1)
    state = record_outcome(state, 2, 3, 0.5)

    pairs = {
        select_pair(state, ids, PairSelectionOptions(rng=DeterministicRandom(777)))
        for _ in range(5)
    }

    assert len(pairs) == 1


def test_avoids_repeated_pairs():
    """测试避免重复：只剩包含条目4的配对未比较过"""
    ids = [1, 2, 3, 4]
    state = create_state(ids, k_factor=32)
    for a_id, b_id in [(1, 2), (1, 3), (2, 3)]:
        state = record_outcome(state, a_id, b_id, 1)

    for seed in range(1, 100):
        pair = select_pair(state, ids, PairSelectionOptions(rng=DeterministicRandom(seed)))
        assert 4 in pair
        assert pair_key(*pair) not in state.pair_history


def test_avoids_repeats_via_fallback():
    """测试重试次数为0时通过枚举仍避开已比较的配对"""
    ids = [1, 2, 3]
    state = record_outcome(create_state(ids, k_factor=32), 1, 2, 1)
    options = PairSelectionOptions(rng=DeterministicRandom(5), max_attempts=0)

    for _ in range(20):
        pair = select_pair(state, ids, options)
        assert pair_key(*pair) != (1, 2)


def test_all_pairs_seen_still_returns_pair():
    """测试所有配对均已比较时仍返回合法配对"""
    ids = [1, 2, 3]
    state = create_state(ids, k_factor=32)
    for a_id, b_id in [(1, 2), (1, 3), (2, 3)]:
        state = record_outcome(state, a_id, b_id, 1)

    pair = select_pair(state, ids, PairSelectionOptions(rng=DeterministicRandom(11)))

    assert pair is not None
    assert pair[0] != pair[1]


def test_repeats_allowed_when_disabled():
    """测试关闭避免重复时可以返回已比较的配对"""
    ids = [1, 2]
    state = record_outcome(create_state(ids, k_factor=32), 1, 2, 1)

    pair = select_pair(state, ids, PairSelectionOptions(rng=DeterministicRandom(3), avoid_repeats=False))

    assert set(pair) == {1, 2}


def test_status_boundary_rule():
    """测试禁止已看完与已弃坑之间的比较"""
    allowed = status_boundary_rule({1: 'Completed', 2: 'Dropped', 3: 'Watching', 4: 'Completed'})

    assert not allowed(1, 2)
    assert not allowed(2, 1)
    assert allowed(1, 4)
    assert allowed(2, 3)
    assert allowed(1, 3)


def test_respects_legality_rule():
    """测试配对遵守合法性规则"""
    statuses = {i: ('Completed' if i % 2 else 'Dropped') for i in range(10)}
    ids = list(statuses)
    state = create_state(ids, k_factor=32)
    allowed = status_boundary_rule(statuses)

    for seed in range(1, 100):
        pair = select_pair(state, ids, PairSelectionOptions(rng=DeterministicRandom(seed), allowed=allowed))
        assert statuses[pair[0]] == statuses[pair[1]]


def test_exhaustion_returns_none():
    """测试不存在合法配对时返回 None"""
    statuses = {1: 'Completed', 2: 'Dropped'}
    state = create_state([1, 2], k_factor=32)

    pair = select_pair(
        state,
        [1, 2],
        PairSelectionOptions(rng=DeterministicRandom(1), allowed=status_boundary_rule(statuses)),
    )

    assert pair is None


def test_enumerate_legal_pairs():
    """测试合法配对枚举"""
    assert enumerate_legal_pairs([1, 2, 3]) == [(1, 2), (1, 3), (2, 3)]
    assert enumerate_legal_pairs([1, 2, 3], lambda a, b: 2 not in (a, b)) == [(1, 3)]


def test_prefers_close_ratings():
    """测试偏向评分接近的对手"""
    values = {0: 1500, 1: 1510, 2: 1490, 3: 1505, 4: 2600}
    state = _state_with_ratings(values)
    rng = DeterministicRandom(31)
    close = far = 0

    for _ in range(400):
        a_id, b_id = select_pair(state, list(values), PairSelectionOptions(rng=rng, avoid_repeats=False))
        if abs(values[a_id] - values[b_id]) <= 20:
            close += 1
        elif abs(values[a_id] - values[b_id]) >= 1000:
            far += 1

    assert close > far


def test_priority_boost_increases_attention():
    """测试欠采样分数段的条目获得更多关注"""
    ids = list(range(10))
    state = create_state(ids, k_factor=32)
    priority = {i: (1.0 if i == 0 else 0.0) for i in ids}
    rng = DeterministicRandom(2025)
    counts = {i: 0 for i in ids}

    for _ in range(500):
        a_id, b_id = select_pair(
            state,
            ids,
            PairSelectionOptions(rng=rng, avoid_repeats=False, priority_by_id=priority, priority_boost=2.5),
        )
        counts[a_id] += 1
        counts[b_id] += 1

    assert counts[0] > 1.5 * max(counts[i] for i in ids if i != 0)


def test_same_score_cluster_with_distant_legal_pair():
    """测试同分且评分悬殊时，即使候选池内找不到合法对手也能通过枚举找到唯一合法配对"""
    values = {i: 1500 + i for i in range(69)}
    values[69] = 3000
    state = _state_with_ratings(values)
    ids = list(values)
    scores = {i: 7 for i in ids}
    priority = {i: 1.0 for i in ids}

    def allowed(a_id, b_id):
        return {a_id, b_id} == {0, 69}

    options = PairSelectionOptions(
        rng=DeterministicRandom(17),
        max_attempts=5,
        priority_by_id=priority,
        priority_boost=2.5,
        score_by_id=scores,
        same_score_boost=1.875,
        allowed=allowed,
    )

    pair = select_pair(state, ids, options)

    assert set(pair) == {0, 69}


def test_adaptive_strategy_wraps_options():
    """测试策略对象绑定随机源和规则"""
    statuses = {1: 'Completed', 2: 'Completed', 3: 'Dropped', 4: 'Dropped'}
    state = create_state(list(statuses), k_factor=32)
    strategy = AdaptivePairingStrategy(
        rng=DeterministicRandom(8),
        allowed=status_boundary_rule(statuses),
    )
    strategy.set_priorities({i: 0.0 for i in statuses}, {i: None for i in statuses}, 0.0, 0.0)

    for _ in range(20):
        a_id, b_id = strategy.next_pair(state, list(statuses))
        assert statuses[a_id] == statuses[b_id]

    assert strategy.options().max_attempts == 250
