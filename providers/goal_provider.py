import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from models.goal import Goal, GoalCategory, GoalStatus, Milestone
from providers.base import JsonRecordStore, NotFoundError

logger = logging.getLogger(__name__)


class GoalProvider:
    """Holds the user's goals and their milestones."""

    def __init__(self, storage_dir: Optional[Path] = None):
        self._store = JsonRecordStore("goals.json", Goal.from_dict, storage_dir)

    @property
    def goals(self) -> List[Goal]:
        return sorted(self._store.items, key=lambda g: g.sort_order)

    @property
    def active_goals(self) -> List[Goal]:
        return [g for g in self.goals if g.is_active]

    @property
    def backlog_goals(self) -> List[Goal]:
        return [g for g in self.goals if g.status == GoalStatus.BACKLOG]

    def add_goal(self, goal: Goal) -> Goal:
        same_status = [g.sort_order for g in self._store.items if g.status == goal.status]
        goal.sort_order = max(same_status, default=-1) + 1
        self._store.add(goal)
        logger.info(f"Added goal: {goal.title}")
        return goal

    def update_goal(self, goal: Goal) -> Goal:
        return self._store.replace(goal, "Goal")

    def delete_goal(self, goal_id: str) -> Goal:
        goal = self._store.remove(goal_id, "Goal")
        logger.info(f"Deleted goal: {goal.title}")
        return goal

    def get_goal_by_id(self, goal_id: str) -> Optional[Goal]:
        return self._store.find(goal_id)

    def get_goal(self, goal_id: str) -> Goal:
        return self._store.get(goal_id, "Goal")

    def get_goals_by_category(self, category: GoalCategory) -> List[Goal]:
        return [g for g in self.active_goals if g.category == category]

    def set_status(self, goal_id: str, status: GoalStatus) -> Goal:
        goal = self.get_goal(goal_id)
        goal.status = status
        return self.update_goal(goal)

    def update_goal_progress(self, goal_id: str, progress: int) -> Goal:
        goal = self.get_goal(goal_id)
        goal.current_progress = min(max(int(progress), 0), 100)
        return self.update_goal(goal)

    # === Milestones ===

    def add_milestone(self, goal_id: str, milestone: Milestone) -> Milestone:
        goal = self.get_goal(goal_id)
        milestone.goal_id = goal_id
        milestone.order = len(goal.milestones)
        goal.milestones.append(milestone)
        self.update_goal(goal)
        return milestone

    def get_milestone(self, goal_id: str, milestone_id: str) -> Milestone:
        goal = self.get_goal(goal_id)
        for milestone in goal.milestones:
            if milestone.id == milestone_id:
                return milestone
        raise NotFoundError(f"Milestone not found: {milestone_id}")

    def update_milestone(self, goal_id: str, milestone: Milestone) -> Milestone:
        goal = self.get_goal(goal_id)
        self.get_milestone(goal_id, milestone.id)
        goal.milestones = [milestone if m.id == milestone.id else m for m in goal.milestones]
        self.update_goal(goal)
        return milestone

    def delete_milestone(self, goal_id: str, milestone_id: str) -> Milestone:
        goal = self.get_goal(goal_id)
        milestone = self.get_milestone(goal_id, milestone_id)
        goal.milestones = [m for m in goal.milestones if m.id != milestone_id]
        self.update_goal(goal)
        return milestone

    def complete_milestone(self, goal_id: str, milestone_id: str) -> Milestone:
        milestone = self.get_milestone(goal_id, milestone_id)
        milestone.is_completed = True
        milestone.completed_date = datetime.now()
        self.update_goal(self.get_goal(goal_id))
        return milestone

    def uncomplete_milestone(self, goal_id: str, milestone_id: str) -> Milestone:
        milestone = self.get_milestone(goal_id, milestone_id)
        milestone.is_completed = False
        milestone.completed_date = None
        self.update_goal(self.get_goal(goal_id))
        return milestone
