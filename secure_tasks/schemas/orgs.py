from datetime import datetime

from pydantic import BaseModel, ConfigDict

class OrgCreateIn(BaseModel):
    name: str
    description: str | None = None
    parent_id: int | None = None

class OrgUpdateIn(BaseModel):
    name: str | None = None
    description: str | None = None
    parent_id: int | None = None

class OrgOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    parent_id: int | None
    created_at: datetime

class OrgTreeOut(OrgOut):
    children: list[OrgOut] = []
    user_count: int = 0

class OrgUserCount(BaseModel):
    id: int
    name: str
    user_count: int

class OrgStatsOut(BaseModel):
    total_organizations: int
    organizations_with_users: list[OrgUserCount]
    average_users_per_org: float
