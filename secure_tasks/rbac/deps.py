import json
from typing import Any

from fastapi import Depends, Request

from secure_tasks.auth.deps import get_current_principal
from secure_tasks.rbac.guards import Access, authorize, resolve_resource_org_id
from secure_tasks.rbac.principal import Principal

async def _json_body(request: Request) -> dict[str, Any] | None:
    if request.method in ("GET", "HEAD", "DELETE"):
        return None
    raw = await request.body()
    if not raw:
        return None
    try:
        body = json.loads(raw)
    except ValueError:
        return None
    return body if isinstance(body, dict) else None

def require(access: Access):
    async def _checker(
        request: Request,
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        resource_org_id = None
        if access.org_scoped:
            resource_org_id = resolve_resource_org_id(
                await _json_body(request),
                request.path_params,
                request.query_params,
            )
        authorize(principal, access, resource_org_id)
        return principal

    return _checker
