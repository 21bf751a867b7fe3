import logging
from collections.abc import Callable

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from secure_tasks.config import settings
from secure_tasks.db import db_ping
from secure_tasks.redis_client import redis_ping

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

@router.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "secure-task-api", "env": settings.app_env}

def _probe(name: str, fn: Callable[[], bool]) -> tuple[bool, str | None]:
    try:
        return bool(fn()), None
    except Exception as e:
        logger.warning("readiness check %s raised: %s", name, e)
        msg = str(e).strip()
        return False, f"{e.__class__.__name__}{(': ' + msg) if msg else ''}"

@router.get("/ready")
def ready():
    probes = {"db": db_ping, "redis": redis_ping}

    checks: dict[str, bool] = {}
    errors: dict[str, str] = {}
    for name, fn in probes.items():
        checks[name], error = _probe(name, fn)
        if error:
            errors[name] = error

    ok = all(checks.values())
    body: dict = {"status": "ok" if ok else "unready", "checks": checks}
    if errors:
        body["errors"] = errors

    # 503 until both db and redis answer
    return JSONResponse(status_code=200 if ok else 503, content=body)
