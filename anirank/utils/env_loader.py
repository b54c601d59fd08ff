"""统一的环境变量加载工具"""

from pathlib import Path
from dotenv import load_dotenv
from anirank.utils.logger import get_logger

logger = get_logger(__name__)


def load_project_env() -> None:
    """加载项目根目录的.env文件（ANIRANK_* 变量可在配置中以 env_var: 引用）"""
    project_root = Path(__file__).resolve().parent.parent.parent
    env_path = project_root / ".env"

    if env_path.exists():
        load_dotenv(env_path, override=True)
        logger.info(f"已加载环境变量文件: {env_path}")
    else:
        logger.debug(f"未找到环境变量文件: {env_path}，将使用系统环境变量")
