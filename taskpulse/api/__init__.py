"""HTTP access to the task collection."""

from taskpulse.api.facade import TaskFacade
from taskpulse.api.server import ApiServer, create_web_app

__all__ = ["ApiServer", "TaskFacade", "create_web_app"]
