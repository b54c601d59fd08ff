"""
条目目录加载模块
支持 MyAnimeList 导出的 XML（可为 gzip 压缩）以及 CSV / JSON 表格
"""

import gzip
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

import pandas as pd
from lxml import etree

from anirank.utils.logger import get_logger

logger = get_logger(__name__)

GZIP_MAGIC = b'\x1f\x8b'
_INVALID_XML_CHARS = re.compile("[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD]")

TABLE_COLUMNS = {
    'item_id': ('item_id', 'anime_id', 'id'),
    'title': ('title',),
    'status': ('status', 'my_status'),
    'external_score': ('external_score', 'my_score', 'score'),
}


@dataclass(frozen=True)
class CatalogItem:
    """目录条目；external_score 为 0 或缺失时视为无外部评分"""
    item_id: int
    title: str
    status: Optional[str] = None
    external_score: Optional[int] = None
    item_type: Optional[str] = None
    episodes: Optional[int] = None
    watched_episodes: Optional[int] = None

    @property
    def has_score(self) -> bool:
        return bool(self.external_score and self.external_score > 0)


@dataclass
class CatalogExport:
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    items: List[CatalogItem] = field(default_factory=list)
    source: Optional[str] = None


def safe_int(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, float):
        return None if pd.isna(value) else int(value)
    text = str(value).strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _text(node, tag: str) -> Optional[str]:
    child = node.find(tag)
    if child is None or not child.text:
        return None
    return child.text.strip() or None


def parse_mal_export(data: bytes, filename: Optional[str] = None) -> CatalogExport:
    """解析 MAL 导出文件，缺少ID或标题的条目被忽略，结果按标题排序"""
    if data[:2] == GZIP_MAGIC or (filename or '').lower().endswith('.gz'):
        data = gzip.decompress(data)

    text = _INVALID_XML_CHARS.sub('', data.decode('utf-8', errors='replace'))
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(text.encode('utf-8'), parser=parser)
    except etree.XMLSyntaxError as e:
        raise ValueError(f"MAL导出文件格式错误: {e}") from e

    info = root.find('myinfo')
    export = CatalogExport(
        user_id=safe_int(_text(info, 'user_id')) if info is not None else None,
        user_name=_text(info, 'user_name') if info is not None else None,
        source=filename,
    )

    for node in root.iter('anime'):
        item_id = safe_int(_text(node, 'series_animedb_id'))
        title = _text(node, 'series_title')
        if item_id is None or not title:
            continue
        export.items.append(CatalogItem(
            item_id=item_id,
            title=title,
            status=_text(node, 'my_status'),
            external_score=safe_int(_text(node, 'my_score')),
            item_type=_text(node, 'series_type'),
            episodes=safe_int(_text(node, 'series_episodes')),
            watched_episodes=safe_int(_text(node, 'my_watched_episodes')),
        ))

    export.items.sort(key=lambda item: item.title.casefold())
    return export


def _resolve_column(columns: Iterable[str], field_name: str) -> Optional[str]:
    lowered = {str(column).lower(): column for column in columns}
    for alias in TABLE_COLUMNS[field_name]:
        if alias in lowered:
            return lowered[alias]
    return None


def items_from_frame(df: pd.DataFrame) -> List[CatalogItem]:
    """从表格构造条目，需要 ID 与标题两列"""
    columns = {name: _resolve_column(df.columns, name) for name in TABLE_COLUMNS}
    if columns['item_id'] is None or columns['title'] is None:
        raise ValueError(f"目录表格缺少必要的列（ID/标题），实际列: {list(df.columns)}")

    items = []
    for _, row in df.iterrows():
        item_id = safe_int(row[columns['item_id']])
        title = row[columns['title']]
        if item_id is None or pd.isna(title) or not str(title).strip():
            continue
        status = row[columns['status']] if columns['status'] else None
        score = row[columns['external_score']] if columns['external_score'] else None
        items.append(CatalogItem(
            item_id=item_id,
            title=str(title).strip(),
            status=None if status is None or pd.isna(status) else str(status).strip() or None,
            external_score=safe_int(score),
        ))
    return items


def load_catalog(path) -> CatalogExport:
    """根据扩展名加载目录文件"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"目录文件不存在: {path}")

    suffixes = [suffix.lower() for suffix in path.suffixes]
    if '.xml' in suffixes:
        export = parse_mal_export(path.read_bytes(), path.name)
    elif suffixes and suffixes[-1] == '.csv':
        export = CatalogExport(items=items_from_frame(pd.read_csv(path)), source=path.name)
    elif suffixes and suffixes[-1] == '.json':
        with open(path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
        records = raw.get('items', []) if isinstance(raw, dict) else raw
        export = CatalogExport(
            user_name=raw.get('user_name') if isinstance(raw, dict) else None,
            items=items_from_frame(pd.DataFrame(records)),
            source=path.name,
        )
    else:
        raise ValueError(f"不支持的目录文件类型: {path.name}")

    logger.info(f"已加载目录 {path.name}: {len(export.items)} 个条目")
    return export


def filter_by_status(items: Iterable[CatalogItem], statuses: Optional[Iterable[str]]) -> List[CatalogItem]:
    """按状态筛选；statuses 为空时保留全部带状态的条目"""
    items = list(items)
    if not statuses:
        return [item for item in items if item.status]
    allowed = set(statuses)
    return [item for item in items if item.status in allowed]


def unique_statuses(items: Iterable[CatalogItem]) -> List[str]:
    return sorted({item.status for item in items if item.status})
