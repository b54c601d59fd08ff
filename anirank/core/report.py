"""
结果导出模块
将排名结果写为 CSV（ELO 保留4位小数、百分位保留8位小数）和 JSON（元数据 + 结果）
"""

import json
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from anirank.infra.scoring.blending import ResultRow
from anirank.utils.logger import get_logger

logger = get_logger(__name__)

CSV_COLUMNS = [
    'rank',
    'anime_id',
    'title',
    'status',
    'my_score',
    'elo',
    'games',
    'wins',
    'losses',
    'ties',
    'percentile',
    'score_1_10',
]


def result_to_record(row: ResultRow) -> Dict[str, Any]:
    return {
        'rank': row.rank,
        'anime_id': row.item_id,
        'title': row.title,
        'status': row.status,
        'my_score': row.external_score,
        'elo': row.elo,
        'games': row.games,
        'wins': row.wins,
        'losses': row.losses,
        'ties': row.ties,
        'percentile': row.percentile,
        'score_1_10': row.score_1_10,
    }


def results_to_frame(results: Sequence[ResultRow]) -> pd.DataFrame:
    """构造导出表格，数值列预先格式化为固定精度的字符串"""
    records = []
    for row in results:
        record = result_to_record(row)
        record['status'] = row.status or ''
        record['my_score'] = '' if row.external_score is None else str(row.external_score)
        record['elo'] = f"{row.elo:.4f}"
        record['percentile'] = f"{row.percentile:.8f}"
        records.append(record)
    return pd.DataFrame(records, columns=CSV_COLUMNS)


def results_to_csv(results: Sequence[ResultRow]) -> str:
    return results_to_frame(results).to_csv(index=False, lineterminator='\n')


def results_to_json(metadata: Dict[str, Any], results: Sequence[ResultRow]) -> str:
    payload = {
        'generated_at': datetime.now(timezone.utc).isoformat(),
        'metadata': metadata,
        'results': [result_to_record(row) for row in results],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2, default=str)


def safe_base_name(name: Optional[str]) -> str:
    """由来源文件名生成安全的输出文件名前缀"""
    if not name:
        return 'anime_ranking'
    stem = re.sub(r'(\.xml)?(\.gz)?$|\.(csv|json)$', '', name, flags=re.IGNORECASE)
    cleaned = re.sub(r'[^A-Za-z0-9_-]+', '_', stem).strip('_')
    return cleaned or 'anime_ranking'


def save_results(
    results: Sequence[ResultRow],
    metadata: Dict[str, Any],
    output_dir: Path,
    base_name: Optional[str] = None,
) -> Dict[str, str]:
    """保存 CSV 与 JSON 结果文件，返回文件路径"""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = time.strftime('%Y_%m_%d_%H_%M_%S', time.localtime())
    prefix = f"{safe_base_name(base_name)}_ranked_{timestamp}"

    csv_path = output_dir / f"{prefix}.csv"
    csv_path.write_text(results_to_csv(results), encoding='utf-8')
    logger.info(f"已保存排名结果: {csv_path}")

    json_path = output_dir / f"{prefix}.json"
    json_path.write_text(results_to_json(metadata, results), encoding='utf-8')
    logger.info(f"已保存排名结果: {json_path}")

    return {'csv_path': str(csv_path), 'json_path': str(json_path)}


def format_ranking_table(results: List[ResultRow], limit: int = 15) -> str:
    """控制台展示用的简要排名表"""
    lines = []
    for row in results[:limit]:
        score = row.external_score if row.external_score is not None else '-'
        lines.append(
            f"  {row.rank:>3}. {row.title} [{row.status or '-'}] "
            f"elo={row.elo:.1f} mal={score} -> {row.score_1_10}"
        )
    return '\n'.join(lines)
