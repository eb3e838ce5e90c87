import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from wordcoach.coordinator.test_coordinator import TestCoordinator
from wordcoach.services.familiar_words_service import FamiliarWordsService
from wordcoach.services.plan_service import PlanService

logger = logging.getLogger(__name__)


@dataclass
class LearningBatch:
    """翻牌记忆阶段登记的一批单词"""
    plan_id: int
    words: List[str]
    is_new_word_session: bool


class LearningFlowService:
    """
    学习流程服务

    翻牌记忆阶段登记本批单词，结束后按熟词过滤；
    过滤后为空则直接刷新计划进度，否则启动测试序列。
    """

    def __init__(self, coordinator: TestCoordinator, familiar_words_service: FamiliarWordsService,
                 plan_service: PlanService):
        self.coordinator = coordinator
        self.familiar_words_service = familiar_words_service
        self.plan_service = plan_service
        self.current_batch: Optional[LearningBatch] = None

        coordinator.add_listener(self._on_coordinator_event)
        logger.info("学习流程服务初始化完成")

    def begin(self, plan_id: int, words: List[str], is_new_word_session: bool) -> LearningBatch:
        """开始翻牌记忆阶段"""
        self.current_batch = LearningBatch(plan_id, list(words), is_new_word_session)
        self.familiar_words_service.active_plan_id = plan_id
        kind = "新词" if is_new_word_session else "复习"
        logger.info(f"计划 {plan_id} 开始{kind}学习，单词数{len(words)}")
        return self.current_batch

    def abandon(self):
        """用户退出翻牌记忆"""
        logger.info("用户退出翻牌记忆")
        self._end()

    async def finish_flashcards(self) -> Dict[str, Any]:
        """
        翻牌记忆结束，过滤熟词后决定是否进入测试

        Returns:
            Dict: 是否开始测试、测试单词与被跳过的熟词
        """
        batch = self.current_batch
        if batch is None:
            raise ValueError("当前没有登记的学习批次")

        tested = self.familiar_words_service.filter_words(batch.words)
        skipped = [w for w in batch.words if w not in tested]
        logger.info(f"熟词过滤后，本轮测试包含 {len(tested)} 个单词")

        result = {
            "plan_id": batch.plan_id,
            "started": False,
            "tested_words": tested,
            "skipped_familiar_words": skipped
        }

        if not tested:
            logger.info("所有单词已标记为熟词，跳过测试")
            self._end()
            await self.plan_service.refresh_plan(batch.plan_id)
            return result

        self.coordinator.start_session(tested, batch.is_new_word_session, plan_id=batch.plan_id)
        result["started"] = True
        return result

    async def start_learning(self, plan_id: int, words: List[str], is_new_word_session: bool) -> Dict[str, Any]:
        """登记并立即结束翻牌阶段"""
        self.begin(plan_id, words, is_new_word_session)
        return await self.finish_flashcards()

    def _on_coordinator_event(self, event: Dict[str, Any]):
        if event["type"] in ("session_completed", "session_cancelled"):
            self._end()

    def _end(self):
        self.current_batch = None
        self.familiar_words_service.active_plan_id = None
