import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from wordcoach.api.dependencies import AppServices, get_services
from wordcoach.api.schemas.session_schemas import (
    CompleteTestRequest, CoordinatorStateResponse, SessionHistoryResponse,
    SessionRecordResponse, StartSessionRequest
)
from wordcoach.coordinator.state_machine import (
    EmptyWordBatchError, NoActiveSessionError, SessionAlreadyActiveError
)
from wordcoach.services.session_service import SessionService
from wordcoach.utils.database import get_db

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/start", response_model=CoordinatorStateResponse)
async def start_session(request: StartSessionRequest, services: AppServices = Depends(get_services)):
    """
    开始测试会话
    """
    coordinator = services.coordinator
    try:
        coordinator.start_session(request.words, request.is_new_word_session, plan_id=request.plan_id)
    except EmptyWordBatchError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SessionAlreadyActiveError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return coordinator.snapshot()


@router.post("/complete", response_model=CoordinatorStateResponse)
async def complete_current_test(request: CompleteTestRequest, services: AppServices = Depends(get_services)):
    """
    提交当前题型的作答结果
    """
    coordinator = services.coordinator
    try:
        await coordinator.complete_current_test([r.to_result() for r in request.results])
    except NoActiveSessionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return coordinator.snapshot()


@router.post("/cancel", response_model=CoordinatorStateResponse)
async def cancel_session(services: AppServices = Depends(get_services)):
    """取消会话，不上报任何结果"""
    services.coordinator.cancel_session()
    return services.coordinator.snapshot()


@router.post("/retry", response_model=CoordinatorStateResponse)
async def retry_failed_words(services: AppServices = Depends(get_services)):
    """用答错的单词重新测试"""
    if services.coordinator.retry_failed_words() is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="没有可重试的单词"
        )
    return services.coordinator.snapshot()


@router.post("/dismiss", response_model=CoordinatorStateResponse)
async def dismiss_results(services: AppServices = Depends(get_services)):
    services.coordinator.dismiss_results()
    return services.coordinator.snapshot()


@router.get("/current", response_model=CoordinatorStateResponse)
async def get_current_state(services: AppServices = Depends(get_services)):
    """当前协调器状态"""
    return services.coordinator.snapshot()


@router.get("/questions")
async def get_questions(services: AppServices = Depends(get_services)):
    """当前题型的题目"""
    session = services.coordinator.state.session
    test_type = session.current_test_type if session else None
    return {
        "test_type": test_type.value if test_type else None,
        "questions": services.coordinator.snapshot()["questions"]
    }


@router.get("/history", response_model=SessionHistoryResponse)
async def get_session_history(
    plan_id: Optional[int] = None,
    limit: int = 10,
    db: Session = Depends(get_db)
):
    """
    获取测试会话历史
    """
    try:
        session_service = SessionService(db)
        records = session_service.get_recent_sessions(plan_id, limit)
        sessions = [SessionRecordResponse.model_validate(r.to_dict()) for r in records]
        return {
            "plan_id": plan_id,
            "sessions": sessions,
            "total": len(sessions)
        }
    except Exception as e:
        logger.error(f"获取会话历史失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取会话历史失败"
        )


@router.get("/history/{session_uid}", response_model=SessionRecordResponse)
async def get_session_record(session_uid: str, db: Session = Depends(get_db)):
    """
    获取单次测试会话记录
    """
    record = SessionService(db).get_session(session_uid)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="会话记录不存在"
        )
    return SessionRecordResponse.model_validate(record.to_dict())
