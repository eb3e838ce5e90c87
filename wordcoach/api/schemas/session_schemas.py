from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, List, Optional
from datetime import datetime

from wordcoach.coordinator.test_types import TestType, WordTestResult


class StartSessionRequest(BaseModel):
    words: List[str]
    is_new_word_session: bool = True
    plan_id: Optional[int] = None


class WordTestResultPayload(BaseModel):
    """测试界面提交的单条作答结果"""
    word: str
    chinese_expected: str = ""
    user_answer: str = ""
    is_correct: bool
    test_type: TestType
    timestamp: Optional[datetime] = None

    def to_result(self) -> WordTestResult:
        if self.timestamp is None:
            return WordTestResult(self.word, self.chinese_expected, self.user_answer,
                                  self.is_correct, self.test_type)
        return WordTestResult(self.word, self.chinese_expected, self.user_answer,
                              self.is_correct, self.test_type, self.timestamp)


class CompleteTestRequest(BaseModel):
    results: List[WordTestResultPayload]


class QuestionResponse(BaseModel):
    word: str
    chinese_text: str
    full_definition: Optional[str] = None


class CoordinatorStateResponse(BaseModel):
    phase: str
    session: Optional[Dict[str, Any]] = None
    report: Dict[str, List[bool]] = {}
    verdicts: Dict[str, bool] = {}
    unassessed_words: List[str] = []
    questions: List[QuestionResponse] = []


class SessionRecordResponse(BaseModel):
    id: int
    session_uid: str
    plan_id: Optional[int] = None
    is_new_word_session: bool
    words: List[str]
    test_sequence: List[str]
    total_results: int
    correct_results: int
    accuracy: float
    passed_words: List[str]
    failed_words: List[str]
    unassessed_words: List[str]
    start_time: datetime
    end_time: Optional[datetime] = None

    model_config = ConfigDict(
        from_attributes=True
    )


class SessionHistoryResponse(BaseModel):
    plan_id: Optional[int] = None
    sessions: List[SessionRecordResponse]
    total: int
