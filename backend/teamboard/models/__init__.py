from teamboard.models.activity import ActivityLog
from teamboard.models.notifications import Notification
from teamboard.models.projects import Project, ProjectMember
from teamboard.models.tasks import Task, TaskComment
from teamboard.models.time_entries import TimeEntry
from teamboard.models.users import User

__all__ = [
    "ActivityLog",
    "Notification",
    "Project",
    "ProjectMember",
    "Task",
    "TaskComment",
    "TimeEntry",
    "User",
]
