import pytest

from wordcoach.coordinator import state_machine
from wordcoach.coordinator.state_machine import (
    CoordinatorPhase, CoordinatorState, EmptyWordBatchError, NoActiveSessionError,
    RefreshDailySession, SessionAlreadyActiveError, SubmitWordStatus
)
from wordcoach.coordinator.test_types import (
    NEW_WORD_TEST_SEQUENCE, REVIEW_TEST_SEQUENCE, TestType, WordTestResult
)

ROUND_END = "round_end_assessment"


def result(word, is_correct, test_type=TestType.LISTENING_TEST):
    return WordTestResult(word, "", "", is_correct, test_type)


def test_new_word_session_uses_seven_step_sequence():
    state = state_machine.start_session(CoordinatorState(), ["cat"], True, plan_id=1)
    assert state.phase == CoordinatorPhase.ACTIVE
    assert state.session.test_sequence == NEW_WORD_TEST_SEQUENCE
    assert [t.value for t in state.session.test_sequence] == [
        "word_to_meaning_select",
        "word_meaning_match",
        "meaning_to_word_select",
        "chinese_to_english_select",
        "chinese_to_english_spell",
        "listening_test",
        "speech_recognition_test",
    ]


def test_review_session_uses_three_step_sequence():
    state = state_machine.start_session(CoordinatorState(), ["cat"], False)
    assert state.session.test_sequence == REVIEW_TEST_SEQUENCE
    assert state.session.current_test_type == TestType.CHINESE_TO_ENGLISH_SPELL


def test_empty_word_batch_rejected():
    with pytest.raises(EmptyWordBatchError):
        state_machine.start_session(CoordinatorState(), [], True)


def test_start_while_active_is_rejected():
    active = state_machine.start_session(CoordinatorState(), ["cat"], True)
    with pytest.raises(SessionAlreadyActiveError):
        state_machine.start_session(active, ["dog"], True)


def test_start_after_completion_replaces_finished_session():
    state = state_machine.start_session(CoordinatorState(), ["cat"], False)
    for _ in range(3):
        state = state_machine.complete_current_test(state, [result("cat", True)], ROUND_END).state
    assert state.phase == CoordinatorPhase.COMPLETED

    restarted = state_machine.start_session(state, ["dog"], False)
    assert restarted.session.words == ("dog",)
    assert restarted.report == {}


def test_is_complete_becomes_true_only_after_last_phase():
    state = state_machine.start_session(CoordinatorState(), ["cat"], True)
    flags = []
    for _ in range(7):
        flags.append(state.session.is_complete)
        state = state_machine.complete_current_test(state, [result("cat", True)], ROUND_END).state
    flags.append(state.session.is_complete)

    assert flags == [False] * 7 + [True]
    assert state.session.current_test_index == 7


def test_complete_without_active_session_raises():
    idle = CoordinatorState()
    with pytest.raises(NoActiveSessionError):
        state_machine.complete_current_test(idle, [result("cat", True)], ROUND_END)
    assert idle.phase == CoordinatorPhase.IDLE


def test_intermediate_phase_has_no_effects():
    state = state_machine.start_session(CoordinatorState(), ["cat"], True, plan_id=3)
    transition = state_machine.complete_current_test(state, [result("cat", False)], ROUND_END)
    assert transition.effects == ()
    assert transition.state.report == {"cat": (False,)}
    # 原状态不受影响
    assert state.report == {}


def test_final_verdicts_require_all_correct():
    report = {"cat": (True, True), "dog": (True, False), "run": ()}
    assert state_machine.final_verdicts(report) == {"cat": True, "dog": False}


def test_completion_emits_status_and_refresh_effects():
    state = state_machine.start_session(CoordinatorState(), ["cat", "dog"], False, plan_id=9)
    for i in range(3):
        results = [result("cat", True), result("dog", i != 1)]
        transition = state_machine.complete_current_test(state, results, ROUND_END)
        state = transition.state

    assert state.verdicts == {"cat": True, "dog": False}
    assert transition.effects == (
        SubmitWordStatus(9, "cat", True, ROUND_END),
        SubmitWordStatus(9, "dog", False, ROUND_END),
        RefreshDailySession(9),
    )


def test_completion_without_plan_has_no_effects():
    state = state_machine.start_session(CoordinatorState(), ["cat"], False)
    for _ in range(3):
        transition = state_machine.complete_current_test(state, [result("cat", True)], ROUND_END)
        state = transition.state
    assert transition.effects == ()


def test_words_without_answers_are_unassessed():
    state = state_machine.start_session(CoordinatorState(), ["cat", "xyz"], False, plan_id=1)
    for _ in range(3):
        transition = state_machine.complete_current_test(state, [result("cat", True)], ROUND_END)
        state = transition.state

    assert state.unassessed_words == ("xyz",)
    assert [e.word for e in transition.effects if isinstance(e, SubmitWordStatus)] == ["cat"]


def test_cancel_discards_everything():
    state = state_machine.start_session(CoordinatorState(), ["cat"], True, plan_id=1)
    state = state_machine.complete_current_test(state, [result("cat", True)], ROUND_END).state
    cancelled = state_machine.cancel_session(state)
    assert cancelled == CoordinatorState()


def test_dismiss_only_from_completed():
    active = state_machine.start_session(CoordinatorState(), ["cat"], True)
    assert state_machine.dismiss_results(active) is active


def test_retry_deduplicates_failed_words():
    state = state_machine.start_session(CoordinatorState(), ["wordA", "wordB"], True, plan_id=5)
    results = [result("wordA", False), result("wordB", True), result("wordA", True)]
    state = state_machine.complete_current_test(state, results, ROUND_END).state

    retried = state_machine.retry_failed_words(state)
    assert retried.session.words == ("wordA",)
    assert retried.session.test_sequence == REVIEW_TEST_SEQUENCE
    assert retried.session.plan_id == 5


def test_retry_without_failures_returns_none():
    state = state_machine.start_session(CoordinatorState(), ["cat"], True)
    state = state_machine.complete_current_test(state, [result("cat", True)], ROUND_END).state
    assert state_machine.retry_failed_words(state) is None
    assert state_machine.retry_failed_words(CoordinatorState()) is None


def test_results_with_different_casing_count_as_one_word():
    state = state_machine.start_session(CoordinatorState(), ["cat"], False, plan_id=2)
    transition = None
    for _ in range(3):
        results = [result("Cat", True), result(" cat ", False)]
        transition = state_machine.complete_current_test(state, results, ROUND_END)
        state = transition.state

    assert state.verdicts == {"cat": False}
    assert state.unassessed_words == ()
    assert [e.word for e in transition.effects if isinstance(e, SubmitWordStatus)] == ["cat"]
    assert len(state.session.results_for_word("CAT")) == 6
    assert state.session.failed_words() == ["cat"]


def test_session_dict_lists_results():
    state = state_machine.start_session(CoordinatorState(), ["cat"], False)
    state = state_machine.complete_current_test(state, [result("cat", True)], ROUND_END).state

    results = state.session.to_dict()["results"]
    assert results[0]["word"] == "cat"
    assert results[0]["test_type"] == "listening_test"
