"""任务分配引擎：按技能匹配、当前负载与优先级为新任务挑选负责人。"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from projectflow.domain.enums import Priority
from projectflow.domain.errors import InvalidPriority, NoEligibleCandidates
from projectflow.domain.models import CandidateScore, TaskSnapshot, UserSnapshot

SKILL_MATCH_POINTS = 10
WORKLOAD_CAPACITY = 5
HIGH_PRIORITY_BONUS = 5


def coerce_priority(priority: Priority | str) -> Priority:
    """将字符串优先级规整为枚举，非法取值抛出 InvalidPriority。"""
    if isinstance(priority, Priority):
        return priority
    try:
        return Priority(priority)
    except ValueError as exc:
        raise InvalidPriority(priority) from exc


def count_open_tasks(tasks: Iterable[TaskSnapshot]) -> Counter[str]:
    """按负责人统计未完成任务数；无负责人的任务不计入任何人。"""
    counts: Counter[str] = Counter()
    for task in tasks:
        if task.assignee_id is not None and task.is_open():
            counts[task.assignee_id] += 1
    return counts


class AssignmentEngine:
    """纯函数式分配引擎，不做 I/O，也不修改入参。"""

    def score_candidate(self, title: str, priority: Priority, user: UserSnapshot, open_tasks: int) -> int:
        """计算单个候选人的得分。"""
        score = 0
        # 子串包含而非分词匹配：标签 "ui" 也会命中 "build"。
        lowered_title = title.lower()
        for skill in user.skills:
            if skill.lower() in lowered_title:
                score += SKILL_MATCH_POINTS
        score += max(0, WORKLOAD_CAPACITY - open_tasks)
        # 对所有候选人统一加分，不影响排序，只体现在 ai_score 上。
        if priority is Priority.high:
            score += HIGH_PRIORITY_BONUS
        return score

    def rank_candidates(
        self,
        title: str,
        priority: Priority | str,
        candidates: Sequence[UserSnapshot],
        existing_tasks: Iterable[TaskSnapshot],
    ) -> list[CandidateScore]:
        """按输入顺序返回每个候选人的得分。"""
        resolved = coerce_priority(priority)
        if not candidates:
            raise NoEligibleCandidates()
        open_counts = count_open_tasks(existing_tasks)
        return [
            CandidateScore(
                user_id=user.id,
                score=self.score_candidate(title, resolved, user, open_counts.get(user.id, 0)),
            )
            for user in candidates
        ]

    def select(
        self,
        title: str,
        priority: Priority | str,
        candidates: Sequence[UserSnapshot],
        existing_tasks: Iterable[TaskSnapshot],
    ) -> CandidateScore:
        """选出得分最高的候选人；同分时取输入顺序中靠前者。"""
        scores = self.rank_candidates(title, priority, candidates, existing_tasks)
        best = scores[0]
        for item in scores[1:]:
            # 严格大于才替换，保证同分时保留先出现的候选人。
            if item.score > best.score:
                best = item
        return best

    def select_assignee(
        self,
        title: str,
        priority: Priority | str,
        candidates: Sequence[UserSnapshot],
        existing_tasks: Iterable[TaskSnapshot],
    ) -> str:
        """返回被选中负责人的用户 ID。"""
        return self.select(title, priority, candidates, existing_tasks).user_id
