import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from wordcoach.api.dependencies import AppServices, get_services
from wordcoach.api.schemas.plan_schemas import (
    DailySession, Plan, PlanCreateRequest, PlanProgress,
    StartLearningRequest, StartLearningResponse
)
from wordcoach.coordinator.state_machine import SessionAlreadyActiveError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=List[Plan])
async def get_plans(services: AppServices = Depends(get_services)):
    """获取全部学习计划"""
    plan_service = services.plan_service
    plans = await plan_service.fetch_plans()
    if plan_service.error_message and not plans:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=plan_service.error_message
        )
    return plans


@router.post("/", response_model=Plan, status_code=status.HTTP_201_CREATED)
async def create_plan(plan_request: PlanCreateRequest, services: AppServices = Depends(get_services)):
    """
    创建学习计划，并生成第一批新词
    """
    plan = await services.plan_service.create_plan(plan_request)
    if plan is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=services.plan_service.error_message or "创建计划失败"
        )
    return plan


@router.delete("/{plan_id}")
async def delete_plan(plan_id: int, services: AppServices = Depends(get_services)):
    if not await services.plan_service.delete_plan(plan_id):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=services.plan_service.error_message
        )
    return {"message": "计划已删除", "plan_id": plan_id}


@router.get("/{plan_id}/progress", response_model=PlanProgress)
async def get_plan_progress(plan_id: int, services: AppServices = Depends(get_services)):
    progress = await services.plan_service.fetch_progress(plan_id)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="无法获取计划进度"
        )
    return progress


@router.get("/{plan_id}/daily-session", response_model=DailySession)
async def get_daily_session(plan_id: int, services: AppServices = Depends(get_services)):
    """获取每日任务，没有新词时会自动生成"""
    session = await services.plan_service.fetch_daily_session(plan_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="无法获取每日任务"
        )
    return session


@router.post("/{plan_id}/learn", response_model=StartLearningResponse)
async def start_learning(plan_id: int, request: StartLearningRequest,
                         services: AppServices = Depends(get_services)):
    """
    翻牌记忆结束后进入测试：跳过熟词，全部是熟词时只刷新计划
    """
    if not request.words:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="单词列表不能为空"
        )
    try:
        return await services.learning_flow_service.start_learning(
            plan_id, request.words, request.is_new_word_session
        )
    except SessionAlreadyActiveError as e:
        services.learning_flow_service.abandon()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
