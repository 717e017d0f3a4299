from __future__ import annotations

from fastapi import APIRouter, Depends

from cms_api.core.metrics import request_metrics
from cms_api.deps import require_user
from cms_api.models.user import User
from cms_api.schemas.common import ok

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def endpoint_metrics(_user: User = Depends(require_user)):
    return ok({"endpoints": request_metrics.snapshot()})
