from pydantic import BaseModel, ConfigDict
from typing import List, Optional


class DailyWords(BaseModel):
    word_date: str  # YYYY-MM-DD
    words: List[str]


class PlanBase(BaseModel):
    plan_name: str
    category: str
    selected_plan: str
    daily_count: int


class PlanCreateRequest(PlanBase):
    pass


class Plan(PlanBase):
    id: Optional[int] = None
    daily_words: Optional[List[DailyWords]] = None

    model_config = ConfigDict(
        from_attributes=True
    )


class PlanProgress(BaseModel):
    learned_count: int
    total_count: Optional[int] = None


class DailySession(BaseModel):
    new_words: List[str] = []
    review_words: List[str] = []
    is_new_word_paused: bool = False
    is_backlog_session: bool = False


class WordStatusUpdateRequest(BaseModel):
    plan_id: int
    word: str
    is_correct: bool
    test_type: str


class StartLearningRequest(BaseModel):
    words: List[str]
    is_new_word_session: bool = True


class StartLearningResponse(BaseModel):
    plan_id: int
    started: bool
    tested_words: List[str]
    skipped_familiar_words: List[str]
