"""Task models, markdown parsing and the JSON state store shared by the sync engines."""

from .exceptions import InvalidTaskIdError, StateCorruptError, TaskSyncError
from .models import Priority, Task, TaskState, TodoState, generate_task_id
from .repository import TodoStateRepository, state_path_for

__all__ = [
    "InvalidTaskIdError",
    "StateCorruptError",
    "TaskSyncError",
    "Priority",
    "Task",
    "TaskState",
    "TodoState",
    "generate_task_id",
    "TodoStateRepository",
    "state_path_for",
]
