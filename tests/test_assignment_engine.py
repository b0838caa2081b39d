"""分配引擎测试：覆盖评分规则、同分先后、负载饱和与异常分支。"""

from __future__ import annotations

import pytest

from projectflow.domain.assignment import AssignmentEngine, count_open_tasks
from projectflow.domain.enums import Priority
from projectflow.domain.errors import InvalidPriority, NoEligibleCandidates
from projectflow.domain.models import TaskSnapshot, UserSnapshot


def _user(user_id: str, *skills: str) -> UserSnapshot:
    return UserSnapshot(id=user_id, role="member", skills=tuple(skills))


def _open_tasks(user_id: str, count: int, status: str = "pending") -> list[TaskSnapshot]:
    return [TaskSnapshot(id=f"{user_id}-t{i}", assignee_id=user_id, status=status) for i in range(count)]


def _scores(engine: AssignmentEngine, title: str, priority: str, candidates, tasks) -> dict[str, int]:
    return {item.user_id: item.score for item in engine.rank_candidates(title, priority, candidates, tasks)}


def test_skill_match_beats_workload() -> None:
    """技能命中 + 空闲负载应胜出。"""
    engine = AssignmentEngine()
    candidates = [_user("u1", "backend"), _user("u2", "frontend")]
    tasks = _open_tasks("u2", 3)

    assert _scores(engine, "Fix backend bug", "low", candidates, tasks) == {"u1": 15, "u2": 2}
    assert engine.select_assignee("Fix backend bug", "low", candidates, tasks) == "u1"


def test_high_priority_adds_uniform_bonus() -> None:
    """无技能命中时由负载决定，high 优先级为每人统一加 5。"""
    engine = AssignmentEngine()
    candidates = [_user("u1", "backend"), _user("u2", "frontend")]
    tasks = _open_tasks("u2", 3)

    assert _scores(engine, "Update UI", "high", candidates, tasks) == {"u1": 10, "u2": 7}
    assert engine.select_assignee("Update UI", Priority.high, candidates, tasks) == "u1"


def test_single_overloaded_candidate_still_selected() -> None:
    """唯一候选人即使得分为 0 也应被选中。"""
    engine = AssignmentEngine()
    candidates = [_user("u1")]
    choice = engine.select("Anything", "medium", candidates, _open_tasks("u1", 6))

    assert choice.user_id == "u1"
    assert choice.score == 0


def test_empty_candidate_pool_raises() -> None:
    engine = AssignmentEngine()
    with pytest.raises(NoEligibleCandidates):
        engine.select_assignee("Fix backend bug", "low", [], [])


def test_invalid_priority_raises() -> None:
    engine = AssignmentEngine()
    with pytest.raises(InvalidPriority):
        engine.select_assignee("Fix backend bug", "urgent", [_user("u1")], [])


def test_tie_prefers_first_candidate_in_input_order() -> None:
    """同分时取输入顺序中靠前的候选人。"""
    engine = AssignmentEngine()
    candidates = [_user("u1"), _user("u2"), _user("u3")]

    assert engine.select_assignee("Write docs", "low", candidates, []) == "u1"
    assert engine.select_assignee("Write docs", "low", list(reversed(candidates)), []) == "u3"


def test_skill_match_is_case_insensitive_substring() -> None:
    """技能按小写子串匹配，不要求整词。"""
    engine = AssignmentEngine()
    candidates = [_user("u1", "API", "ui"), _user("u2", "database")]

    scores = _scores(engine, "Build api gateway", "low", candidates, [])

    # "api" 与 "ui"（Build 中的子串）同时命中。
    assert scores == {"u1": 25, "u2": 5}


def test_adding_matching_skill_adds_exactly_ten() -> None:
    engine = AssignmentEngine()
    tasks = _open_tasks("u1", 2)
    before = _scores(engine, "Deploy backend", "medium", [_user("u1", "frontend")], tasks)["u1"]
    after = _scores(engine, "Deploy backend", "medium", [_user("u1", "frontend", "Backend")], tasks)["u1"]

    assert after - before == 10


def test_workload_term_is_monotonic_and_saturates() -> None:
    """未完成任务越多得分越低，5 个及以上时负载项为 0。"""
    engine = AssignmentEngine()
    user = _user("u1")
    scores = [
        _scores(engine, "Task", "low", [user], _open_tasks("u1", count))["u1"]
        for count in range(8)
    ]

    assert scores == [5, 4, 3, 2, 1, 0, 0, 0]


def test_completed_and_unassigned_tasks_do_not_count() -> None:
    tasks = [
        *_open_tasks("u1", 2, status="completed"),
        *_open_tasks("u1", 1, status="in-progress"),
        TaskSnapshot(id="orphan", assignee_id=None, status="pending"),
    ]

    assert count_open_tasks(tasks) == {"u1": 1}


def test_high_priority_never_changes_ranking() -> None:
    engine = AssignmentEngine()
    candidates = [_user("u1", "qa"), _user("u2", "backend"), _user("u3")]
    tasks = [*_open_tasks("u1", 1), *_open_tasks("u2", 4)]

    low = _scores(engine, "Backend QA pass", "low", candidates, tasks)
    high = _scores(engine, "Backend QA pass", "high", candidates, tasks)

    assert {key: high[key] - low[key] for key in low} == {"u1": 5, "u2": 5, "u3": 5}
    assert engine.select_assignee("Backend QA pass", "low", candidates, tasks) == engine.select_assignee(
        "Backend QA pass", "high", candidates, tasks
    )


def test_inputs_are_not_mutated() -> None:
    engine = AssignmentEngine()
    candidates = [_user("u1", "backend"), _user("u2")]
    tasks = _open_tasks("u1", 2)
    candidates_before = list(candidates)
    tasks_before = list(tasks)

    engine.select_assignee("Fix backend bug", "high", candidates, tasks)

    assert candidates == candidates_before
    assert tasks == tasks_before
