from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/", summary="Health Check")
async def health_check(request: Request):
    coordinator = getattr(request.app.state, "coordinator", None)
    transports = coordinator.transports.values() if coordinator else []
    return {"status": "ok", "push_available": any(t.is_available() for t in transports)}
