"""
统一配置管理器
加载和解析YAML配置文件，支持环境变量解析、配置验证
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
import yaml
import os
import time

DEFAULT_RANKING_SETTINGS: Dict[str, Any] = {
    'k_factor': 32,
    'initial_rating': 1500,
    'avoid_repeats': True,
    'assume_dropped_lower': True,
    'comparisons_target': None,
    'seed': None,
    'upper_status': 'Completed',
    'lower_status': 'Dropped',
}

K_FACTOR_RANGE = (1, 200)


class ConfigManager:
    """统一配置管理器: 加载YAML配置、解析环境变量、提供配置访问接口"""

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_path}")

        self._config = self._load_config()

    def _load_config(self) -> dict:
        """加载配置文件"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
                if not config:
                    raise ValueError("配置文件为空")
                if not isinstance(config, dict):
                    raise ValueError("配置文件顶层必须是映射")
                return config
        except yaml.YAMLError as e:
            raise ValueError(f"配置文件格式错误: {e}")

    def _resolve_env_var(self, value: Any) -> Any:
        """解析环境变量格式的配置值，支持格式: env_var:VARIABLE_NAME"""
        if isinstance(value, str) and value.startswith("env_var:"):
            env_key = value[8:]  # 移除 "env_var:" 前缀
            env_value = os.getenv(env_key)
            if env_value is None:
                raise ValueError(f"环境变量 {env_key} 未设置")
            return env_value
        return value

    def get_run_name(self) -> str:
        """获取排名任务名称"""
        return self._config.get('run_name', 'anime_ranking')

    # ==================== 目录 ====================

    def get_catalog_config(self) -> Dict:
        return self._config.get('catalog', {}) or {}

    def get_catalog_path(self) -> Optional[Path]:
        """获取目录文件路径（相对路径以配置文件所在目录为基准）"""
        raw_path = self.get_catalog_config().get('path')
        if not raw_path:
            return None
        path = Path(self._resolve_env_var(raw_path))
        if not path.is_absolute():
            path = self.config_path.parent / path
        return path

    def get_included_statuses(self) -> List[str]:
        """参与排名的状态列表（为空表示全部）"""
        return list(self.get_catalog_config().get('statuses', []) or [])

    # ==================== 排名设置 ====================

    def get_ranking_settings(self) -> Dict:
        """获取排名设置（未配置项使用默认值）"""
        configured = self._config.get('ranking', {}) or {}
        return {**DEFAULT_RANKING_SETTINGS, **configured}

    def get_k_factor(self) -> float:
        return float(self.get_ranking_settings()['k_factor'])

    def get_seed(self) -> Optional[int]:
        seed = self.get_ranking_settings()['seed']
        return None if seed is None else int(self._resolve_env_var(seed))

    def get_comparisons_target(self) -> Optional[int]:
        target = self.get_ranking_settings()['comparisons_target']
        return None if target is None else int(target)

    def get_scoring_settings(self) -> Dict:
        """获取评分设置: score_mean_target 与 percentile_shift 二选一"""
        return self._config.get('scoring', {}) or {}

    def get_score_mean_target(self) -> Optional[float]:
        value = self.get_scoring_settings().get('score_mean_target')
        return None if value is None else float(value)

    def get_percentile_shift(self) -> Optional[float]:
        value = self.get_scoring_settings().get('percentile_shift')
        return None if value is None else float(value)

    # ==================== 输出与日志 ====================

    def get_output_settings(self) -> Dict:
        return self._config.get('output', {}) or {}

    def get_results_dir(self) -> Path:
        """获取结果目录（默认 results/<日期>）"""
        result_dir = self.get_output_settings().get('result_dir')
        if result_dir is None:
            day_tag = time.strftime('%Y_%m_%d', time.localtime())
            return Path("results") / day_tag
        return Path(result_dir)

    def get_session_path(self) -> Path:
        """获取会话快照路径"""
        return Path(self.get_output_settings().get('session_path', 'sessions/session.json'))

    def get_logging_settings(self) -> Dict:
        settings = self._config.get('logging', {}) or {}
        return {
            'level': settings.get('level', 'INFO'),
            'log_to_file': settings.get('log_to_file', True),
        }

    def validate_config(self) -> List[str]:
        """验证配置文件的完整性和有效性"""
        errors = []

        if not self.get_catalog_config().get('path'):
            errors.append("缺少必要配置: catalog.path")

        statuses = self.get_catalog_config().get('statuses', [])
        if statuses is not None and not isinstance(statuses, list):
            errors.append("catalog.statuses 必须是列表")

        ranking = self.get_ranking_settings()
        k_factor = ranking.get('k_factor')
        if not isinstance(k_factor, (int, float)) or isinstance(k_factor, bool):
            errors.append("ranking.k_factor 必须是数值")
        elif not K_FACTOR_RANGE[0] <= k_factor <= K_FACTOR_RANGE[1]:
            errors.append(f"ranking.k_factor 超出范围 {K_FACTOR_RANGE}: {k_factor}")

        for key in ('avoid_repeats', 'assume_dropped_lower'):
            if not isinstance(ranking.get(key), bool):
                errors.append(f"ranking.{key} 必须是布尔值")

        target = ranking.get('comparisons_target')
        if target is not None and (not isinstance(target, int) or target < 0):
            errors.append("ranking.comparisons_target 必须是非负整数")

        scoring = self.get_scoring_settings()
        mean_target = scoring.get('score_mean_target')
        if mean_target is not None and not (
            isinstance(mean_target, (int, float)) and 1 <= mean_target <= 10
        ):
            errors.append("scoring.score_mean_target 必须在 1 到 10 之间")

        shift = scoring.get('percentile_shift')
        if shift is not None and not (isinstance(shift, (int, float)) and -1 <= shift <= 1):
            errors.append("scoring.percentile_shift 必须在 -1 到 1 之间")

        if mean_target is not None and shift is not None:
            errors.append("scoring.score_mean_target 与 scoring.percentile_shift 不能同时配置")

        return errors
