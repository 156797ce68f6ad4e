from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class ProjectCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)


class ProjectResponse(BaseModel):
    id: UUID
    name: str
    description: str
    created_at: datetime


class ExpenseCreateRequest(BaseModel):
    project_id: UUID
    amount: Decimal = Field(gt=0, le=Decimal("1000000"))
    description: str = Field(default="", max_length=500)


class ExpenseResponse(BaseModel):
    id: UUID
    project_id: UUID
    amount: Decimal
    description: str
    created_at: datetime


class InvitationCreateRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    role: str = Field(default="editor", pattern="^(admin|manager|editor|viewer)$")


class CompanyUserResponse(BaseModel):
    id: UUID
    email: str
    role: str
    status: str


class DeletedResponse(BaseModel):
    deleted: bool
    id: UUID
