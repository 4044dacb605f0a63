"""Event names carried on the real-time channel."""

from __future__ import annotations

from typing import Final

# Server -> client
NOTIFICATION: Final = "notification"
TASK_STATUS_UPDATED: Final = "task_status_updated"
TASK_ASSIGNED: Final = "task_assigned"
PROJECT_UPDATED: Final = "project_updated"
USER_ONLINE: Final = "user_online"
USER_OFFLINE: Final = "user_offline"
ONLINE_USERS: Final = "online_users"
TYPING_START: Final = "typing_start"
TYPING_STOP: Final = "typing_stop"
JOINED_PROJECT: Final = "joined_project"
LEFT_PROJECT: Final = "left_project"
ERROR: Final = "error"

# Client -> server
JOIN_PROJECT: Final = "join_project"
LEAVE_PROJECT: Final = "leave_project"
TASK_STATUS_UPDATE: Final = "task_status_update"


def project_room(project_id: int) -> str:
    return f"project_{project_id}"


def frame(event: str, data: object) -> dict[str, object]:
    return {"event": event, "data": data}
