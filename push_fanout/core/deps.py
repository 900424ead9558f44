from fastapi import Header, Request

from push_fanout.core.exceptions import AppException
from push_fanout.core.fanout import FanoutCoordinator
from push_fanout.core.history import SqlAlchemyHistoryRecorder


def get_coordinator(request: Request) -> FanoutCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        AppException().raise_503("Push service is not initialized")
    return coordinator


def get_recorder(request: Request) -> SqlAlchemyHistoryRecorder:
    coordinator = get_coordinator(request)
    if coordinator.recorder is None:
        AppException().raise_503("Push history is not configured")
    return coordinator.recorder


async def get_owner_id(x_admin_id: str | None = Header(default=None)) -> str:
    """
    The admin triggering the request. Authentication happens upstream (gateway / auth service),
    which forwards the authenticated admin id in X-Admin-Id.
    """
    owner_id = (x_admin_id or "").strip()
    if not owner_id:
        AppException().raise_401("Not authenticated")
    return owner_id
