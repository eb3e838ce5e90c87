import asyncio
import logging
from typing import List, Optional, Set

from wordcoach.api.schemas.plan_schemas import WordStatusUpdateRequest
from wordcoach.config.settings import settings
from wordcoach.utils.remote_client import RemotePlanClient

logger = logging.getLogger(__name__)


class FamiliarWordsService:
    """熟词服务：记录用户长按标记为已掌握的单词，只在进程生命周期内有效"""

    def __init__(self, remote_client: RemotePlanClient = None):
        self.remote_client = remote_client
        self.familiar_words: Set[str] = set()
        # 正在学习的计划，标记熟词时同步上报
        self.active_plan_id: Optional[int] = None
        self._pending: Set[asyncio.Task] = set()

    def is_familiar(self, word: str) -> bool:
        return word.strip().lower() in self.familiar_words

    def mark_familiar(self, word: str) -> bool:
        """
        标记熟词

        有正在学习的计划时，同时以 familiar 类型上报该单词（发出即不管）

        Returns:
            bool: 是否发起了上报
        """
        key = word.strip().lower()
        if not key:
            return False
        self.familiar_words.add(key)
        logger.info(f"单词标记为熟词: {key}")

        if self.active_plan_id is None or self.remote_client is None:
            return False

        request = WordStatusUpdateRequest(
            plan_id=self.active_plan_id,
            word=word,
            is_correct=True,
            test_type=settings.FAMILIAR_TEST_TYPE,
        )
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"没有运行中的事件循环，熟词不上报: {key}")
            return False
        task = loop.create_task(self.remote_client.update_word_status(request))
        self._pending.add(task)
        task.add_done_callback(self._on_report_done)
        return True

    def _on_report_done(self, task: asyncio.Task):
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"熟词上报失败（不重试）: {task.exception()}")

    def filter_words(self, words: List[str]) -> List[str]:
        """过滤掉已标记为熟词的单词，保持原顺序"""
        return [w for w in words if w.strip().lower() not in self.familiar_words]

    def list_words(self) -> List[str]:
        return sorted(self.familiar_words)

    async def drain(self):
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
