from fastapi import APIRouter

router = APIRouter(tags=["meta"])


# liveness only; upstream providers are not probed
@router.get("/health")
async def health() -> dict:
    return {"status": "ok", "service": "genrelay"}
