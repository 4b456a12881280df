"""
Liveness check. Reports which chat store backend the process is wired to.
"""

from fastapi import APIRouter

from chat_service.config import settings

router = APIRouter(prefix="/healthz", tags=["health"])

@router.get("")
def health_check():
    return {"status": "ok", "store": settings.CHAT_STORE}
