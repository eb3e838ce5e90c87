import uuid
import logging
from enum import Enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from wordcoach.coordinator.test_types import TestType, WordTestResult, sequence_for, REVIEW_TEST_SEQUENCE
from wordcoach.utils.helpers import uniqued

logger = logging.getLogger(__name__)


class EmptyWordBatchError(ValueError):
    """单词列表为空，无法开始会话"""


class SessionAlreadyActiveError(RuntimeError):
    """已有进行中的会话"""


class NoActiveSessionError(RuntimeError):
    """当前没有进行中的会话"""


class CoordinatorPhase(Enum):
    """测试协调器所处阶段"""
    IDLE = "idle"              # 空闲
    ACTIVE = "active"          # 测试进行中
    COMPLETED = "completed"    # 全部测试完成，展示结果


@dataclass(frozen=True)
class WordTestSession:
    """一轮测试会话，测试序列在开始时确定，只能向前推进"""
    plan_id: Optional[int]
    words: Tuple[str, ...]
    test_sequence: Tuple[TestType, ...]
    is_new_word_session: bool
    current_test_index: int = 0
    results: Tuple[WordTestResult, ...] = ()
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_complete(self) -> bool:
        return self.current_test_index == len(self.test_sequence)

    @property
    def current_test_type(self) -> Optional[TestType]:
        if self.current_test_index >= len(self.test_sequence):
            return None
        return self.test_sequence[self.current_test_index]

    @property
    def accuracy(self) -> float:
        """所有作答结果的正确率"""
        if not self.results:
            return 0.0
        correct = sum(1 for r in self.results if r.is_correct)
        return correct / len(self.results)

    def canonical_word(self, word: str) -> str:
        """把作答结果中的单词对应到本轮单词的原始写法（不区分大小写）"""
        target = word.strip().lower()
        for candidate in self.words:
            if candidate.lower() == target:
                return candidate
        return word.strip()

    def results_for_word(self, word: str) -> List[WordTestResult]:
        target = word.strip().lower()
        return [r for r in self.results if r.word.strip().lower() == target]

    def failed_words(self) -> List[str]:
        """出现过错误作答的单词（去重，保持首次出现顺序）"""
        return uniqued(self.canonical_word(r.word) for r in self.results if not r.is_correct)

    def advance(self, results: Iterable[WordTestResult]) -> "WordTestSession":
        """追加本题型的作答结果并进入下一题型"""
        if self.is_complete:
            raise NoActiveSessionError("会话已完成，无法继续推进")
        return replace(
            self,
            results=self.results + tuple(results),
            current_test_index=self.current_test_index + 1,
        )

    def to_dict(self):
        return {
            "session_id": self.session_id,
            "plan_id": self.plan_id,
            "words": list(self.words),
            "test_sequence": [t.value for t in self.test_sequence],
            "is_new_word_session": self.is_new_word_session,
            "current_test_index": self.current_test_index,
            "current_test_type": self.current_test_type.value if self.current_test_type else None,
            "is_complete": self.is_complete,
            "result_count": len(self.results),
            "results": [r.to_dict() for r in self.results],
            "accuracy": self.accuracy,
            "start_time": self.start_time.isoformat()
        }


@dataclass(frozen=True)
class SubmitWordStatus:
    """副作用：向服务器上报单词最终状态"""
    plan_id: int
    word: str
    is_correct: bool
    test_type: str


@dataclass(frozen=True)
class RefreshDailySession:
    """副作用：刷新计划的每日任务"""
    plan_id: int


@dataclass(frozen=True)
class CoordinatorState:
    """协调器状态快照，每次状态转换都会生成新的快照"""
    phase: CoordinatorPhase = CoordinatorPhase.IDLE
    session: Optional[WordTestSession] = None
    report: Mapping[str, Tuple[bool, ...]] = field(default_factory=dict)
    verdicts: Mapping[str, bool] = field(default_factory=dict)
    unassessed_words: Tuple[str, ...] = ()

    def to_dict(self):
        return {
            "phase": self.phase.value,
            "session": self.session.to_dict() if self.session else None,
            "report": {word: list(seq) for word, seq in self.report.items()},
            "verdicts": dict(self.verdicts),
            "unassessed_words": list(self.unassessed_words)
        }


@dataclass(frozen=True)
class Transition:
    """状态转换结果：新状态与需要执行的副作用"""
    state: CoordinatorState
    effects: Tuple[object, ...] = ()


def record_results(report: Mapping[str, Tuple[bool, ...]], results: Iterable[WordTestResult],
                   canonical: Callable[[str], str] = str.strip) -> Dict[str, Tuple[bool, ...]]:
    """按单词追加每个作答结果的正误，canonical 决定同一单词的不同写法归到哪个键"""
    updated = dict(report)
    for result in results:
        key = canonical(result.word)
        updated[key] = updated.get(key, ()) + (result.is_correct,)
    return updated


def final_verdicts(report: Mapping[str, Tuple[bool, ...]]) -> Dict[str, bool]:
    """
    计算单词最终判定：全部题型都答对才算通过

    没有任何作答记录的单词不参与判定
    """
    return {word: all(seq) for word, seq in report.items() if seq}


def start_session(state: CoordinatorState, words: List[str], is_new_word_session: bool,
                  plan_id: Optional[int] = None) -> CoordinatorState:
    """
    开始新的测试会话

    Args:
        state: 当前状态
        words: 测试单词列表
        is_new_word_session: 是否为新词会话（决定测试序列）
        plan_id: 学习计划ID

    Returns:
        CoordinatorState: 进入ACTIVE阶段的新状态

    Raises:
        EmptyWordBatchError: 单词列表为空
        SessionAlreadyActiveError: 已有进行中的会话
    """
    if not words:
        raise EmptyWordBatchError("无法使用空单词列表开始会话")
    if state.phase == CoordinatorPhase.ACTIVE:
        raise SessionAlreadyActiveError(f"会话 {state.session.session_id} 仍在进行中")

    session = WordTestSession(
        plan_id=plan_id,
        words=tuple(words),
        test_sequence=tuple(sequence_for(is_new_word_session)),
        is_new_word_session=is_new_word_session,
    )
    return CoordinatorState(phase=CoordinatorPhase.ACTIVE, session=session)


def complete_current_test(state: CoordinatorState, results: List[WordTestResult],
                          round_end_test_type: str) -> Transition:
    """
    记录当前题型的作答结果并推进

    全部题型完成时计算每个单词的最终判定，生成上报与刷新副作用
    """
    if state.phase != CoordinatorPhase.ACTIVE or state.session is None:
        raise NoActiveSessionError("当前没有进行中的测试会话")

    session = state.session.advance(results)
    report = record_results(state.report, results, session.canonical_word)

    if not session.is_complete:
        return Transition(state=replace(state, session=session, report=report))

    verdicts = final_verdicts(report)
    reported = {word.lower() for word in verdicts}
    unassessed = tuple(w for w in session.words if w.lower() not in reported)

    effects = []
    if session.plan_id is not None:
        for word, is_correct in verdicts.items():
            effects.append(SubmitWordStatus(
                plan_id=session.plan_id,
                word=word,
                is_correct=is_correct,
                test_type=round_end_test_type,
            ))
        effects.append(RefreshDailySession(plan_id=session.plan_id))

    completed = CoordinatorState(
        phase=CoordinatorPhase.COMPLETED,
        session=session,
        report=report,
        verdicts=verdicts,
        unassessed_words=unassessed,
    )
    return Transition(state=completed, effects=tuple(effects))


def cancel_session(state: CoordinatorState) -> CoordinatorState:
    """取消会话，丢弃所有未提交的结果"""
    return CoordinatorState()


def dismiss_results(state: CoordinatorState) -> CoordinatorState:
    """结果展示结束后回到空闲"""
    if state.phase != CoordinatorPhase.COMPLETED:
        return state
    return CoordinatorState()


def retry_failed_words(state: CoordinatorState) -> Optional[CoordinatorState]:
    """
    用出现过错误作答的单词开始复习序列的新会话

    Returns:
        Optional[CoordinatorState]: 新状态；没有会话或没有错词时为None
    """
    if state.session is None:
        return None

    failed = state.session.failed_words()
    if not failed:
        return None

    session = WordTestSession(
        plan_id=state.session.plan_id,
        words=tuple(failed),
        test_sequence=REVIEW_TEST_SEQUENCE,
        is_new_word_session=False,
    )
    return CoordinatorState(phase=CoordinatorPhase.ACTIVE, session=session)
