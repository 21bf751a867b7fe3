"""Request logging and audit recording."""
import json
import logging
import time

from fastapi import Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from secure_tasks.db import SessionLocal
from secure_tasks.rbac.principal import Principal
from secure_tasks.services import audit

logger = logging.getLogger(__name__)


class AuditMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response: Response = await call_next(request)
        duration = round((time.perf_counter() - start) * 1000, 2)
        logger.info("%s %s %s %sms", request.method, request.url.path, response.status_code, duration)

        principal = getattr(request.state, "principal", None)
        if principal is None or response.status_code >= 400:
            return response

        info = audit.classify(request.method, request.url.path)
        if info is None:
            return response

        # buffer the body so the created id can be read back
        body = b"".join([chunk async for chunk in response.body_iterator])
        try:
            await run_in_threadpool(self._record, request, principal, info, body)
        except Exception:
            logger.exception("audit logging failed for %s %s", request.method, request.url.path)

        return Response(
            content=body,
            status_code=response.status_code,
            headers=dict(response.headers),
            media_type=response.media_type,
        )

    @staticmethod
    def _record(request: Request, principal: Principal, info: audit.AuditInfo, body: bytes) -> None:
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None

        url = request.url.path
        # separate session: the entry commits on its own
        db = SessionLocal()
        try:
            audit.log_entry(
                db,
                info.action,
                info.resource,
                audit.extract_resource_id(url, payload),
                principal.user_id,
                details=audit.build_details(request.method, url),
                ip_address=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
            )
        finally:
            db.close()
