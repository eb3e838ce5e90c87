import asyncio
import logging
from typing import Dict, List, Optional

from wordcoach.api.schemas.plan_schemas import DailySession, Plan, PlanCreateRequest, PlanProgress
from wordcoach.services.word_management_service import WordManagementService
from wordcoach.utils.remote_client import RemoteAPIError, RemotePlanClient

logger = logging.getLogger(__name__)


class PlanService:
    """学习计划服务，缓存计划、进度与每日任务"""

    def __init__(self, remote_client: RemotePlanClient,
                 word_management_service: WordManagementService = None):
        self.remote_client = remote_client
        self.word_management_service = word_management_service

        self.plans: List[Plan] = []
        self.progress: Dict[int, PlanProgress] = {}
        self.daily_sessions: Dict[int, DailySession] = {}
        self.error_message: Optional[str] = None
        logger.info("学习计划服务初始化完成")

    def get_plan(self, plan_id: int) -> Optional[Plan]:
        for plan in self.plans:
            if plan.id == plan_id:
                return plan
        return None

    async def fetch_plans(self) -> List[Plan]:
        """获取全部计划，并并行刷新每个计划的进度和每日任务"""
        self.error_message = None
        try:
            self.plans = await self.remote_client.get_plans()
        except RemoteAPIError as e:
            self.error_message = f"无法加载学习计划: {e}"
            logger.error(f"获取学习计划失败: {e}")
            return self.plans

        await asyncio.gather(*[
            self.refresh_plan(plan.id) for plan in self.plans if plan.id is not None
        ])
        return self.plans

    async def create_plan(self, plan_request: PlanCreateRequest) -> Optional[Plan]:
        """创建计划后立即为其生成第一批新词"""
        self.error_message = None
        try:
            new_plan = await self.remote_client.create_plan(plan_request)
        except RemoteAPIError as e:
            self.error_message = f"创建计划失败: {e}"
            logger.error(f"创建学习计划失败: {e}")
            return None

        logger.info(f"学习计划创建成功: {new_plan.id}")
        if self.word_management_service is not None:
            success = await self.word_management_service.generate_and_upload_words(new_plan)
            if not success:
                logger.error(f"为新计划 {new_plan.id} 生成单词失败")

        await self.fetch_plans()
        return new_plan

    async def delete_plan(self, plan_id: int) -> bool:
        """先从本地移除，删除失败时重新拉取计划列表"""
        self.plans = [p for p in self.plans if p.id != plan_id]
        self.progress.pop(plan_id, None)
        self.daily_sessions.pop(plan_id, None)
        try:
            await self.remote_client.delete_plan(plan_id)
            return True
        except RemoteAPIError as e:
            logger.error(f"删除学习计划 {plan_id} 失败: {e}")
            await self.fetch_plans()
            self.error_message = "删除失败，请重试。"
            return False

    async def fetch_progress(self, plan_id: int) -> Optional[PlanProgress]:
        """获取计划进度，失败时保留旧值"""
        try:
            progress = await self.remote_client.get_plan_progress(plan_id)
        except RemoteAPIError as e:
            logger.error(f"获取计划 {plan_id} 进度失败: {e}")
            return self.progress.get(plan_id)

        self.progress[plan_id] = progress
        return progress

    async def fetch_daily_session(self, plan_id: int, allow_generate: bool = True) -> Optional[DailySession]:
        """
        获取计划的每日任务

        没有新词且新词未暂停时，生成并上传新词后再获取一次

        Args:
            plan_id: 计划ID
            allow_generate: 是否允许触发新词生成

        Returns:
            Optional[DailySession]: 每日任务，失败时为缓存的旧值
        """
        try:
            session = await self.remote_client.get_daily_session(plan_id)
        except RemoteAPIError as e:
            logger.error(f"获取计划 {plan_id} 每日任务失败: {e}")
            return self.daily_sessions.get(plan_id)

        self.daily_sessions[plan_id] = session
        logger.info(f"计划 {plan_id} 每日任务: 新词{len(session.new_words)}, 复习{len(session.review_words)}")

        should_generate = not session.new_words and not session.is_new_word_paused
        if not (should_generate and allow_generate and self.word_management_service):
            return session

        plan = self.get_plan(plan_id)
        if plan is None:
            logger.warning(f"计划 {plan_id} 不在本地计划列表中，无法生成新词")
            return session

        logger.info(f"计划 {plan_id} 没有新词，开始生成")
        if await self.word_management_service.generate_and_upload_words(plan):
            return await self.fetch_daily_session(plan_id, allow_generate=False)

        logger.error(f"为计划 {plan_id} 生成新词失败")
        return session

    async def refresh_plan(self, plan_id: int):
        """同时刷新进度和每日任务"""
        await asyncio.gather(
            self.fetch_progress(plan_id),
            self.fetch_daily_session(plan_id),
        )
