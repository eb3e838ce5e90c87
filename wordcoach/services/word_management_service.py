import asyncio
import logging
from pathlib import Path
from typing import Dict, List

from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from wordcoach.api.schemas.plan_schemas import Plan
from wordcoach.config.settings import settings
from wordcoach.services.wordbook_service import WordbookService
from wordcoach.utils.remote_client import RemoteAPIError, RemotePlanClient

logger = logging.getLogger(__name__)


class WordbookNotFoundError(LookupError):
    """找不到词本或其数据库文件"""


class WordManagementService:
    """新词生成服务：从本地词本中挑选未学过的单词并上传为当天新词"""

    def __init__(self, remote_client: RemotePlanClient, wordbook_service: WordbookService = None,
                 wordbook_dir: str = None):
        self.remote_client = remote_client
        self.wordbook_service = wordbook_service or WordbookService()
        self.wordbook_dir = Path(wordbook_dir or settings.WORDBOOK_DIR)
        # 已打开的词本数据库，避免重复创建引擎
        self._engines: Dict[str, Engine] = {}

    async def generate_and_upload_words(self, plan: Plan) -> bool:
        """
        为学习计划生成并上传新词

        Args:
            plan: 学习计划

        Returns:
            bool: 是否成功；词本已学完也视为成功
        """
        if plan.id is None:
            logger.error("计划ID为空，无法生成新词")
            return False

        try:
            exclusion_list = await self.remote_client.get_all_interacted_words()
            logger.info(f"获取排除列表成功: {len(exclusion_list)} 个单词")

            loop = asyncio.get_running_loop()
            new_words = await loop.run_in_executor(
                None,
                lambda: self.fetch_new_words(plan.selected_plan, exclusion_list, plan.daily_count)
            )

            if not new_words:
                logger.info(f"词本 '{plan.selected_plan}' 已全部学完或没有可用新词")
                return True

            await self.remote_client.upload_new_words(plan.id, new_words)
            logger.info(f"计划 {plan.id} 新词生成并上传成功: {len(new_words)} 个")
            return True

        except (RemoteAPIError, WordbookNotFoundError, SQLAlchemyError) as e:
            logger.error(f"为计划 {plan.id} 生成新词失败: {type(e).__name__}: {e}")
            return False

    def fetch_new_words(self, book_name: str, exclusion_list: List[str], count: int) -> List[str]:
        """从词本的 plan_words 表随机挑选不在排除列表中的单词"""
        db_file_name = self.wordbook_service.find_db_file_name(book_name)
        if not db_file_name:
            raise WordbookNotFoundError(f"找不到词本 '{book_name}' 对应的数据库文件配置")

        engine = self._get_engine(self.wordbook_dir / db_file_name)

        if exclusion_list:
            query = text(
                "SELECT word FROM plan_words WHERE word NOT IN :excluded "
                "ORDER BY RANDOM() LIMIT :count"
            ).bindparams(bindparam("excluded", expanding=True))
            params = {"excluded": list(exclusion_list), "count": count}
        else:
            query = text("SELECT word FROM plan_words ORDER BY RANDOM() LIMIT :count")
            params = {"count": count}

        with engine.connect() as conn:
            return [row[0] for row in conn.execute(query, params)]

    def _get_engine(self, path: Path) -> Engine:
        key = str(path)
        if key in self._engines:
            return self._engines[key]
        if not path.exists():
            raise WordbookNotFoundError(f"词本数据库文件不存在: {path}")
        engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
        self._engines[key] = engine
        return engine
