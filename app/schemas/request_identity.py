from __future__ import annotations

from pydantic import BaseModel, Field


class RequestIdentity(BaseModel):
    subject: str | None = None
    email: str | None = None
    auth_source: str = "anonymous"
    claims: dict = Field(default_factory=dict)
    role_names: list[str] = Field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return self.auth_source != "anonymous" and bool(self.subject or self.email)

    def has_role(self, role: str) -> bool:
        wanted = role.strip().lower()
        return any((r or "").strip().lower() == wanted for r in self.role_names)
