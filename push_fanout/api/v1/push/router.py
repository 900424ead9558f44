from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from push_fanout.api.v1.push.schemas import (
    PushHistoryListResponse,
    PushHistoryResponse,
    PushStatsResponse,
    SendPushRequest,
    SendPushResponse,
    TodayCountResponse,
    ValidateTokenRequest,
    ValidateTokenResponse,
)
from push_fanout.api.v1.push.service import send_push, summary_message, validate_device_token
from push_fanout.core.deps import get_coordinator, get_owner_id, get_recorder
from push_fanout.core.exceptions import AppException
from push_fanout.core.fanout import FanoutCoordinator
from push_fanout.core.history import SqlAlchemyHistoryRecorder

router = APIRouter()


@router.post(
    "/send",
    response_model=SendPushResponse,
    status_code=status.HTTP_200_OK,
    summary="Send push notification (admin)",
    description="Fan a push notification out to iOS and Android device tokens in paced batches.",
)
async def send_notification(
    data: SendPushRequest,
    owner_id: str = Depends(get_owner_id),
    coordinator: FanoutCoordinator = Depends(get_coordinator),
):
    result = await send_push(coordinator, data, owner_id)
    return {"message": summary_message(result), **result.to_dict()}


@router.get("/history", response_model=PushHistoryListResponse, summary="Recent push history (admin)")
async def list_history(
    limit: int = Query(10, ge=1, le=100),
    owner_id: str = Depends(get_owner_id),
    recorder: SqlAlchemyHistoryRecorder = Depends(get_recorder),
):
    histories = await recorder.list_recent(owner_id, limit)
    return {"histories": [h.to_dict() for h in histories]}


@router.get("/history/{history_id}", response_model=PushHistoryResponse, summary="Push history detail (admin)")
async def get_history(
    history_id: UUID,
    owner_id: str = Depends(get_owner_id),
    recorder: SqlAlchemyHistoryRecorder = Depends(get_recorder),
):
    entry = await recorder.get(owner_id, history_id)
    if entry is None:
        AppException().raise_404("Push history not found")
    return entry.to_dict()


@router.get("/today-count", response_model=TodayCountResponse, summary="Pushes sent today (admin)")
async def today_count(
    owner_id: str = Depends(get_owner_id),
    recorder: SqlAlchemyHistoryRecorder = Depends(get_recorder),
):
    return {"count": await recorder.count_today(owner_id)}


@router.get("/stats", response_model=PushStatsResponse, summary="Push status distribution (admin)")
async def push_stats(
    owner_id: str = Depends(get_owner_id),
    recorder: SqlAlchemyHistoryRecorder = Depends(get_recorder),
):
    breakdown = await recorder.status_breakdown(owner_id)
    return {"totalNotifications": sum(breakdown.values()), "statusDistribution": breakdown}


@router.post("/validate-token", response_model=ValidateTokenResponse, summary="Dry-run a device token (admin)")
async def validate_token(
    data: ValidateTokenRequest,
    owner_id: str = Depends(get_owner_id),
    coordinator: FanoutCoordinator = Depends(get_coordinator),
):
    return {"valid": await validate_device_token(coordinator, data.token)}
