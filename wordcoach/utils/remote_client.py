import asyncio
import logging
import time
from datetime import date
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urljoin

import requests
from pydantic import TypeAdapter, ValidationError

from wordcoach.api.schemas.plan_schemas import (
    DailySession, Plan, PlanCreateRequest, PlanProgress, WordStatusUpdateRequest
)
from wordcoach.config.settings import settings

logger = logging.getLogger(__name__)


class RemoteAPIError(Exception):
    """远程服务调用失败"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RemotePlanClient:
    """学习计划与单词状态的远程服务客户端，每个请求只尝试一次"""

    def __init__(self, base_url: str = None, token: str = None, timeout: int = None,
                 session: requests.Session = None):
        self.base_url = base_url or settings.API_BASE_URL
        if not self.base_url.endswith("/"):
            self.base_url += "/"
        self.token = token if token is not None else settings.API_TOKEN
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self.http = session or requests.Session()

        logger.info(f"远程计划客户端初始化完成，服务地址: {self.base_url}")

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, path: str, ok_statuses=(200,), **kwargs) -> requests.Response:
        """同步发送请求，非成功状态码抛出RemoteAPIError"""
        url = urljoin(self.base_url, path)
        start_time = time.time()
        try:
            response = self.http.request(
                method, url, headers=self._headers(), timeout=self.timeout, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"请求失败 {method} {url}: {e}")
            raise RemoteAPIError(f"网络请求失败: {e}") from e

        elapsed = time.time() - start_time
        if response.status_code not in ok_statuses:
            logger.error(f"请求返回错误 {method} {url}: HTTP {response.status_code}, Body: {response.text}")
            raise RemoteAPIError(
                f"服务器返回错误状态码: {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        logger.debug(f"请求成功 {method} {url}: HTTP {response.status_code}, 耗时: {elapsed:.2f}s")
        return response

    async def _request(self, method: str, path: str, ok_statuses=(200,), **kwargs) -> requests.Response:
        """在线程池中执行阻塞请求"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: self._send(method, path, ok_statuses=ok_statuses, **kwargs)
        )

    @staticmethod
    def _json(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteAPIError(f"响应不是合法的JSON: {e}", status_code=response.status_code,
                                 body=response.text) from e

    @classmethod
    def _parse(cls, response: requests.Response, schema) -> Any:
        """按模型校验响应内容，格式不符同样视为远程调用失败"""
        data = cls._json(response)
        try:
            return TypeAdapter(schema).validate_python(data)
        except ValidationError as e:
            logger.error(f"响应格式不正确: {e}")
            raise RemoteAPIError(f"响应格式不正确: {e}", status_code=response.status_code,
                                 body=response.text) from e

    async def get_plans(self) -> List[Plan]:
        """获取用户的所有学习计划"""
        response = await self._request("GET", "plans")
        return self._parse(response, List[Plan])

    async def create_plan(self, plan_request: PlanCreateRequest) -> Plan:
        """创建新的学习计划"""
        response = await self._request("POST", "plans", json=plan_request.model_dump())
        return self._parse(response, Plan)

    async def delete_plan(self, plan_id: int) -> None:
        """删除学习计划"""
        await self._request("DELETE", f"plans/{plan_id}")

    async def get_plan_progress(self, plan_id: int) -> PlanProgress:
        """获取学习计划进度"""
        response = await self._request("GET", f"learning/plan/{plan_id}/progress")
        return self._parse(response, PlanProgress)

    async def get_daily_session(self, plan_id: int) -> DailySession:
        """获取计划的每日任务（新词与复习词）"""
        response = await self._request("GET", "learning/daily-session", params={"plan_id": plan_id})
        return self._parse(response, DailySession)

    async def get_all_interacted_words(self) -> List[str]:
        """获取用户学过的全部单词，作为生成新词时的排除列表"""
        response = await self._request("GET", "learning/all-interacted-words")
        return self._parse(response, List[str])

    async def upload_new_words(self, plan_id: int, words: List[str], word_date: date = None) -> None:
        """上传当天新生成的单词列表，200与201都视为成功"""
        payload = {
            "word_date": (word_date or date.today()).strftime("%Y-%m-%d"),
            "words": words
        }
        await self._request("POST", f"plans/{plan_id}/daily_words", ok_statuses=(200, 201), json=payload)
        logger.info(f"新词上传成功: 计划{plan_id}, {len(words)}个单词")

    async def update_word_status(self, request: WordStatusUpdateRequest) -> bool:
        """上报单个单词的测试结果"""
        await self._request("POST", "word_status", json=request.model_dump())
        logger.info(f"单词状态更新成功: {request.word} ({request.test_type})")
        return True


class MockRemotePlanClient(RemotePlanClient):
    """模拟远程客户端，用于开发和测试，记录所有上报"""

    def __init__(self, daily_sessions: Dict[int, DailySession] = None,
                 progress: Dict[int, PlanProgress] = None,
                 plans: List[Plan] = None,
                 interacted_words: List[str] = None,
                 fail_on: Callable[[str], bool] = None):
        self.base_url = "mock://"
        self.token = None
        self.timeout = 0
        self.daily_sessions = daily_sessions or {}
        self.progress = progress or {}
        self.plans = list(plans or [])
        self.interacted_words = list(interacted_words or [])
        self.fail_on = fail_on or (lambda operation: False)

        self.status_updates: List[WordStatusUpdateRequest] = []
        self.uploaded_words: Dict[int, List[str]] = {}
        self.calls: List[str] = []
        logger.info("使用模拟远程计划客户端")

    def _record(self, operation: str):
        self.calls.append(operation)
        if self.fail_on(operation):
            raise RemoteAPIError(f"模拟调用失败: {operation}", status_code=500)

    async def get_plans(self) -> List[Plan]:
        self._record("get_plans")
        return list(self.plans)

    async def create_plan(self, plan_request: PlanCreateRequest) -> Plan:
        self._record("create_plan")
        plan = Plan(id=len(self.plans) + 1, **plan_request.model_dump())
        self.plans.append(plan)
        return plan

    async def delete_plan(self, plan_id: int) -> None:
        self._record("delete_plan")
        self.plans = [p for p in self.plans if p.id != plan_id]

    async def get_plan_progress(self, plan_id: int) -> PlanProgress:
        self._record("get_plan_progress")
        return self.progress.get(plan_id, PlanProgress(learned_count=0))

    async def get_daily_session(self, plan_id: int) -> DailySession:
        self._record("get_daily_session")
        return self.daily_sessions.get(plan_id, DailySession())

    async def get_all_interacted_words(self) -> List[str]:
        self._record("get_all_interacted_words")
        return list(self.interacted_words)

    async def upload_new_words(self, plan_id: int, words: List[str], word_date: date = None) -> None:
        self._record("upload_new_words")
        self.uploaded_words.setdefault(plan_id, []).extend(words)
        # 上传的新词进入当天的每日任务
        session = self.daily_sessions.get(plan_id, DailySession())
        self.daily_sessions[plan_id] = session.model_copy(update={"new_words": session.new_words + list(words)})

    async def update_word_status(self, request: WordStatusUpdateRequest) -> bool:
        self._record("update_word_status")
        self.status_updates.append(request)
        return True


def create_remote_client(use_mock: bool = None) -> RemotePlanClient:
    """创建远程客户端实例"""
    if use_mock is None:
        use_mock = settings.USE_MOCK_REMOTE
    if use_mock:
        logger.info("使用模拟远程客户端（开发模式）")
        return MockRemotePlanClient()
    return RemotePlanClient()
