from dataclasses import dataclass

from secure_tasks.models.enums import Role

@dataclass(frozen=True)
class Principal:
    """The authenticated caller for one request."""

    user_id: int
    role: Role
    organization_id: int | None
    email: str

    @property
    def is_manager(self) -> bool:
        return self.role in (Role.owner, Role.admin)
