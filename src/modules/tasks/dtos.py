"""Task and claim DTOs for the Service Layer."""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.tasks.constants import ClaimType, TaskPriority


class CreateTaskDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    order_id: Optional[UUID] = None
    priority: TaskPriority = TaskPriority.NORMAL
    due_date: Optional[date] = None

    @field_validator("title")
    @classmethod
    def title_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Task title is required.")
        return v.strip()


class CreateClaimDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    title: str
    description: str = ""
    claim_type: ClaimType = ClaimType.OTHER

    @field_validator("title")
    @classmethod
    def title_must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Claim title is required.")
        return v.strip()
