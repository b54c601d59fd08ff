import argparse
from typing import Callable, Optional

from anirank.core.catalog import filter_by_status, load_catalog, unique_statuses
from anirank.core.report import format_ranking_table, save_results
from anirank.infra.config import ConfigManager
from anirank.infra.scoring import ScoringOrchestrator
from anirank.storage.session_store import load_session, save_session
from anirank.utils.env_loader import load_project_env
from anirank.utils.logger import configure_root_logger, get_logger

logger = get_logger(__name__)

PROMPT_HELP = "[a] 左边更好  [d] 右边更好  [t] 平局  [s] 自动判定/跳过  [q] 保存并退出"


def run_interactive(orchestrator: ScoringOrchestrator, input_func: Callable[[str], str] = input) -> bool:
    """终端交互比较，返回是否完成了目标比较次数"""
    print(PROMPT_HELP)
    while not orchestrator.is_done:
        pair = orchestrator.next_pair()
        if pair is None:
            return False
        left, right = (orchestrator.items[item_id] for item_id in pair)
        progress = orchestrator.get_progress()
        print(f"\n[{progress['comparisons']}/{progress['target']}]")
        print(f"  A: {left.title} ({left.status or '-'}, MAL {left.external_score or '-'})")
        print(f"  D: {right.title} ({right.status or '-'}, MAL {right.external_score or '-'})")

        key = input_func("> ").strip().lower()
        if key == 'a':
            orchestrator.record(1)
        elif key == 'd':
            orchestrator.record(0)
        elif key == 't':
            orchestrator.record(0.5)
        elif key == 's':
            if not orchestrator.apply_auto_decision():
                orchestrator.skip()
        elif key == 'q':
            return False
        else:
            print(PROMPT_HELP)
    return True


def run_automatic(orchestrator: ScoringOrchestrator) -> bool:
    """仅根据外部评分自动完成比较（无法判定的配对记为跳过）"""
    max_steps = orchestrator.comparisons_target * 20 + 100
    for _ in range(max_steps):
        if orchestrator.is_done:
            return True
        if orchestrator.next_pair() is None:
            return False
        if not orchestrator.apply_auto_decision():
            orchestrator.skip()
    logger.warning(f"自动模式在 {max_steps} 步内未达到目标比较次数")
    return orchestrator.is_done


def build_orchestrator(config_manager: ConfigManager, seed: Optional[int] = None) -> ScoringOrchestrator:
    """根据配置加载目录并创建排名会话"""
    export = load_catalog(config_manager.get_catalog_path())
    logger.debug(f"目录中的状态: {unique_statuses(export.items)}")
    items = filter_by_status(export.items, config_manager.get_included_statuses())
    logger.info(f"参与排名的条目: {len(items)} / {len(export.items)}")

    settings = config_manager.get_ranking_settings()
    return ScoringOrchestrator(
        items,
        k_factor=config_manager.get_k_factor(),
        avoid_repeats=settings['avoid_repeats'],
        assume_lower=settings['assume_dropped_lower'],
        comparisons_target=config_manager.get_comparisons_target(),
        seed=seed if seed is not None else config_manager.get_seed(),
        initial_rating=float(settings['initial_rating']),
        upper_status=settings['upper_status'],
        lower_status=settings['lower_status'],
    )


def main():
    load_project_env()

    parser = argparse.ArgumentParser(description="anirank 两两比较排名与评分校准")
    parser.add_argument('--config', type=str, required=True, help='排名任务的YAML配置文件路径')
    parser.add_argument('--auto', action='store_true', help='按外部评分自动完成所有比较')
    parser.add_argument('--seed', type=int, default=None, help='随机种子（覆盖配置）')
    parser.add_argument('--resume', action='store_true', help='从会话快照继续')
    args = parser.parse_args()

    try:
        config_manager = ConfigManager(args.config)
    except (FileNotFoundError, ValueError) as e:
        configure_root_logger(level='INFO', log_to_file=False)
        logger.error(f"配置加载失败: {e}")
        return

    logging_settings = config_manager.get_logging_settings()
    configure_root_logger(level=logging_settings['level'], log_to_file=logging_settings['log_to_file'])
    logger.info(f"anirank 启动 - 配置文件: {args.config}")

    validation_errors = config_manager.validate_config()
    if validation_errors:
        logger.error("配置验证失败，发现以下问题：")
        for error in validation_errors:
            logger.error(f"  - {error}")
        logger.error("请修复配置文件后重试")
        return

    try:
        session_path = config_manager.get_session_path()
        if args.resume and session_path.exists():
            export = load_catalog(config_manager.get_catalog_path())
            orchestrator = load_session(session_path, export.items)
        else:
            orchestrator = build_orchestrator(config_manager, seed=args.seed)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"会话创建失败: {e}")
        return

    if len(orchestrator.item_ids) < 2:
        logger.error("至少需要2个条目才能开始排名")
        return

    finished = run_automatic(orchestrator) if args.auto else run_interactive(orchestrator)
    save_session(orchestrator, session_path)

    if not finished:
        if orchestrator.exhausted:
            logger.warning("当前设置下没有可用的配对，请放宽约束后继续 (--resume)")
        else:
            logger.info("会话已保存，可使用 --resume 继续")
        return

    results = orchestrator.build_results(
        score_mean_target=config_manager.get_score_mean_target(),
        percentile_shift=config_manager.get_percentile_shift(),
    )
    metadata = orchestrator.results_metadata(
        score_mean_target=config_manager.get_score_mean_target(),
        percentile_shift=config_manager.get_percentile_shift(),
        run_name=config_manager.get_run_name(),
        source_filename=config_manager.get_catalog_path().name,
        included_statuses=config_manager.get_included_statuses(),
    )
    paths = save_results(
        results,
        metadata,
        config_manager.get_results_dir(),
        base_name=config_manager.get_catalog_path().name,
    )
    print(format_ranking_table(results))
    logger.info(f"anirank 排名完成 - 结果文件: {paths['csv_path']}")


if __name__ == "__main__":
    main()
