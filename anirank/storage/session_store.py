"""
会话快照存储
将排名会话（评分表、计数器、配对历史、随机源状态、当前配对）保存为 JSON，便于中断后继续
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Optional, Sequence

from anirank.core.catalog import CatalogItem
from anirank.infra.scoring.random_source import DeterministicRandom
from anirank.infra.scoring.rating_algorithms import EloState, Rating
from anirank.infra.scoring.scoring_orchestrator import ScoringOrchestrator
from anirank.utils.logger import get_logger

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1


def serialize_state(state: EloState) -> Dict[str, Any]:
    return {
        'ratings': [
            [item_id, {
                'value': rating.value,
                'games': rating.games,
                'wins': rating.wins,
                'losses': rating.losses,
                'ties': rating.ties,
            }]
            for item_id, rating in state.ratings.items()
        ],
        'comparisons': state.comparisons,
        'skips': state.skips,
        'pair_history': sorted((list(key) for key in state.pair_history), key=str),
        'k_factor': state.k_factor,
        'initial_rating': state.initial_rating,
    }


def deserialize_state(raw: Dict[str, Any]) -> EloState:
    ratings = {item_id: Rating(**values) for item_id, values in raw['ratings']}
    return EloState(
        ratings=MappingProxyType(ratings),
        k_factor=raw['k_factor'],
        initial_rating=raw.get('initial_rating', 1500.0),
        comparisons=raw.get('comparisons', 0),
        skips=raw.get('skips', 0),
        pair_history=frozenset(tuple(key) for key in raw.get('pair_history', [])),
    )


def save_session(orchestrator: ScoringOrchestrator, path) -> Path:
    """写入会话快照"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        'version': SNAPSHOT_VERSION,
        'settings': {
            'k_factor': orchestrator.k_factor,
            'avoid_repeats': orchestrator.avoid_repeats,
            'assume_lower': orchestrator.assume_lower,
            'comparisons_target': orchestrator.comparisons_target,
            'seed': orchestrator.seed,
            'upper_status': orchestrator.upper_status,
            'lower_status': orchestrator.lower_status,
        },
        'item_ids': orchestrator.item_ids,
        'rng_state': orchestrator.rng.state,
        'auto_decisions': orchestrator.auto_decisions,
        'current_pair': list(orchestrator.current_pair) if orchestrator.current_pair else None,
        'elo_state': serialize_state(orchestrator.state),
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    logger.info(f"已保存会话快照: {path} (比较 {orchestrator.state.comparisons} 次)")
    return path


def load_session(
    path,
    items: Sequence[CatalogItem],
    logger_override: Optional[Any] = None,
) -> ScoringOrchestrator:
    """从快照恢复会话；快照中的条目集合必须与当前目录一致"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"会话快照不存在: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        payload = json.load(f)

    if payload.get('version') != SNAPSHOT_VERSION:
        raise ValueError(f"不支持的快照版本: {payload.get('version')}")

    by_id = {item.item_id: item for item in items}
    missing = [item_id for item_id in payload['item_ids'] if item_id not in by_id]
    if missing:
        raise ValueError(f"快照中的条目在目录中不存在: {missing[:5]}")

    settings = payload['settings']
    orchestrator = ScoringOrchestrator(
        [by_id[item_id] for item_id in payload['item_ids']],
        k_factor=settings['k_factor'],
        avoid_repeats=settings['avoid_repeats'],
        assume_lower=settings['assume_lower'],
        comparisons_target=settings['comparisons_target'],
        seed=settings['seed'],
        upper_status=settings.get('upper_status', 'Completed'),
        lower_status=settings.get('lower_status', 'Dropped'),
        logger=logger_override,
    )
    orchestrator.state = deserialize_state(payload['elo_state'])
    orchestrator.strategy.rng = DeterministicRandom(payload['rng_state'])
    orchestrator.auto_decisions = payload.get('auto_decisions', 0)
    current = payload.get('current_pair')
    orchestrator.current_pair = tuple(current) if current else None
    logger.info(f"已恢复会话快照: {path} (比较 {orchestrator.state.comparisons} 次)")
    return orchestrator
