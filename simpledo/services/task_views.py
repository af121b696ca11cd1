# simpledo/services/task_views.py

from datetime import date, time
from typing import Callable, Dict, Iterable, List, Optional

from ..models import Priority, Task, TaskOut, TaskView

VIEW_TITLES: Dict[TaskView, str] = {
    TaskView.ALL_TASKS: "All Tasks",
    TaskView.IMPORTANT: "Important",
    TaskView.COMPLETED: "Completed",
    TaskView.INCOMPLETE: "Incomplete",
}

VIEW_FILTERS: Dict[TaskView, Callable[[Task], bool]] = {
    TaskView.ALL_TASKS: lambda task: True,
    TaskView.IMPORTANT: lambda task: task.priority == Priority.HIGH,
    TaskView.COMPLETED: lambda task: task.completed,
    TaskView.INCOMPLETE: lambda task: not task.completed,
}


def apply_view(view: TaskView, tasks: Iterable[Task]) -> List[Task]:
    keep = VIEW_FILTERS[view]
    return [task for task in tasks if keep(task)]


def format_time_12h(t: time) -> str:
    hour = t.hour % 12 or 12
    ampm = "PM" if t.hour >= 12 else "AM"
    return f"{hour}:{t.minute:02d} {ampm}"


def format_due(due_date: date, due_time: time, today: Optional[date] = None) -> str:
    """
    Tasks due today only show the time ("3:05 PM"). Anything else gets the
    weekday and date too ("Monday, 19 Oct at 3:05 PM").
    """
    today = today or date.today()
    formatted_time = format_time_12h(due_time)
    if due_date == today:
        return formatted_time
    return f"{due_date.strftime('%A')}, {due_date.day} {due_date.strftime('%b')} at {formatted_time}"


def to_task_out(task: Task, today: Optional[date] = None) -> TaskOut:
    return TaskOut(
        **task.model_dump(),
        due_display=format_due(task.due_date, task.due_time, today),
    )
