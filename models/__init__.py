# models/__init__.py

from .users import User
from .college import College
from .cohort import Cohort
from .task import Task, TaskDraft
from .attendance import Attendance
from .authorized_ip import AuthorizedIP
from .log import Log

__all__ = [
    "User",
    "College",
    "Cohort",
    "Task",
    "TaskDraft",
    "Attendance",
    "AuthorizedIP",
    "Log"
]
