import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from wordcoach.coordinator.state_machine import CoordinatorState
from wordcoach.models.test_session_record import TestSessionRecord
from wordcoach.repositories.test_session_repository import TestSessionRepository

logger = logging.getLogger(__name__)


class SessionService:
    """测试会话历史服务"""

    def __init__(self, db: Session):
        self.db = db
        self.session_repo = TestSessionRepository(db)
        logger.info("会话历史服务初始化完成")

    def record_completed_session(self, state: CoordinatorState) -> Optional[TestSessionRecord]:
        """
        保存一次已完成的测试会话

        Args:
            state: COMPLETED阶段的协调器状态

        Returns:
            Optional[TestSessionRecord]: 保存的记录，失败时为None
        """
        session = state.session
        if session is None:
            return None

        correct = sum(1 for r in session.results if r.is_correct)
        record_data = {
            "session_uid": session.session_id,
            "plan_id": session.plan_id,
            "is_new_word_session": session.is_new_word_session,
            "words": list(session.words),
            "test_sequence": [t.value for t in session.test_sequence],
            "total_results": len(session.results),
            "correct_results": correct,
            "accuracy": session.accuracy,
            "passed_words": [w for w, ok in state.verdicts.items() if ok],
            "failed_words": [w for w, ok in state.verdicts.items() if not ok],
            "unassessed_words": list(state.unassessed_words),
            "start_time": session.start_time,
        }

        try:
            record = self.session_repo.create(**record_data)
            logger.info(f"测试会话已保存: {session.session_id}, 正确率{session.accuracy:.2f}")
            return record
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"保存测试会话失败: {e}")
            return None

    def get_session(self, session_uid: str) -> Optional[TestSessionRecord]:
        """获取会话记录"""
        return self.session_repo.get_by_session_uid(session_uid)

    def get_recent_sessions(self, plan_id: int = None, limit: int = 10) -> List[TestSessionRecord]:
        """获取测试会话历史"""
        if plan_id is not None:
            return self.session_repo.get_plan_records(plan_id, limit)
        return self.session_repo.get_recent_records(limit)
