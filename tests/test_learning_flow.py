import pytest

from wordcoach.api.schemas.plan_schemas import DailySession, Plan, PlanProgress
from wordcoach.coordinator.state_machine import CoordinatorPhase
from wordcoach.coordinator.test_coordinator import TestCoordinator
from wordcoach.coordinator.test_types import WordTestResult
from wordcoach.services.familiar_words_service import FamiliarWordsService
from wordcoach.services.learning_flow_service import LearningFlowService
from wordcoach.services.plan_service import PlanService
from wordcoach.services.question_builder import TestQuestionBuilder
from wordcoach.utils.remote_client import MockRemotePlanClient

PLAN = Plan(id=1, plan_name="每日", category="小学", selected_plan="小学核心词", daily_count=5)


@pytest.fixture
def remote():
    return MockRemotePlanClient(
        plans=[PLAN],
        daily_sessions={1: DailySession(new_words=["cat"], review_words=["dog"])},
        progress={1: PlanProgress(learned_count=3, total_count=10)},
    )


@pytest.fixture
def flow(dictionary_service, remote):
    plan_service = PlanService(remote)
    coordinator = TestCoordinator(TestQuestionBuilder(dictionary_service), remote,
                                  plan_service=plan_service)
    return LearningFlowService(coordinator, FamiliarWordsService(remote), plan_service)


@pytest.mark.asyncio
async def test_fully_familiar_batch_skips_tests_and_refreshes(flow, remote):
    flow.familiar_words_service.mark_familiar("Cat")
    flow.familiar_words_service.mark_familiar("dog")

    result = await flow.start_learning(1, ["cat", "dog"], True)

    assert result["started"] is False
    assert result["tested_words"] == []
    assert result["skipped_familiar_words"] == ["cat", "dog"]
    assert flow.coordinator.phase == CoordinatorPhase.IDLE
    assert "get_plan_progress" in remote.calls
    assert "get_daily_session" in remote.calls
    assert flow.plan_service.progress[1].learned_count == 3
    assert flow.familiar_words_service.active_plan_id is None


@pytest.mark.asyncio
async def test_familiar_words_are_filtered_before_testing(flow):
    flow.familiar_words_service.mark_familiar("dog")

    result = await flow.start_learning(1, ["cat", "dog", "run"], False)

    assert result["started"] is True
    assert result["tested_words"] == ["cat", "run"]
    assert flow.coordinator.state.session.words == ("cat", "run")
    assert flow.coordinator.state.session.plan_id == 1


@pytest.mark.asyncio
async def test_marking_familiar_during_learning_reports_status(flow, remote):
    flow.begin(1, ["cat", "dog"], True)

    assert flow.familiar_words_service.mark_familiar("dog") is True
    await flow.familiar_words_service.drain()

    assert len(remote.status_updates) == 1
    update = remote.status_updates[0]
    assert (update.plan_id, update.word, update.is_correct, update.test_type) == (1, "dog", True, "familiar")

    result = await flow.finish_flashcards()
    assert result["tested_words"] == ["cat"]


def test_marking_familiar_outside_learning_does_not_report(flow, remote):
    assert flow.familiar_words_service.mark_familiar("apple") is False
    assert flow.familiar_words_service.is_familiar("APPLE")
    assert remote.calls == []


@pytest.mark.asyncio
async def test_completion_ends_learning_batch(flow):
    await flow.start_learning(1, ["cat"], False)
    coordinator = flow.coordinator
    for _ in range(3):
        test_type = coordinator.state.session.current_test_type
        await coordinator.complete_current_test([WordTestResult("cat", "", "cat", True, test_type)])
    await coordinator.drain()

    assert flow.current_batch is None
    assert flow.familiar_words_service.active_plan_id is None


def test_abandon_clears_batch(flow):
    flow.begin(1, ["cat"], True)
    flow.abandon()
    assert flow.current_batch is None


@pytest.mark.asyncio
async def test_finish_without_batch_raises(flow):
    with pytest.raises(ValueError):
        await flow.finish_flashcards()


def test_marking_familiar_without_event_loop_keeps_word(flow, remote):
    flow.begin(1, ["cat"], True)

    assert flow.familiar_words_service.mark_familiar("cat") is False
    assert flow.familiar_words_service.is_familiar("cat")
    assert remote.status_updates == []
