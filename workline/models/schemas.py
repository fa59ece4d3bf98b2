# workline/models/schemas.py
"""
Request payloads validated by quart-schema.

``*In`` models are used for creation, ``*Patch`` models for partial updates
(only the fields the client actually sent are applied, via
``model_dump(exclude_unset=True)``).
"""

from __future__ import annotations

import re
from datetime import date
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

WorkStatus = Literal["Ready to Start", "In Progress", "Delayed", "Completed"]
Level = Literal["Low", "Medium", "High"]
RiskStatus = Literal["Open", "In Progress", "Mitigated", "Closed"]
UserRole = Literal["ADMIN", "USER"]

WORK_STATUSES: tuple[str, ...] = ("Ready to Start", "In Progress", "Delayed", "Completed")
ACTIVE_RISK_STATUSES: tuple[str, ...] = ("Open", "In Progress")

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_month(value: str) -> str:
    if not MONTH_RE.match(value or ""):
        raise ValueError("month must use the YYYY-MM format")
    return value


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value.strip()


NonBlank = Annotated[str, AfterValidator(_not_blank)]


def _secret(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


def _none_if_empty(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


# passwords are hashed exactly as sent
Secret = Annotated[str, AfterValidator(_secret)]
OptionalId = Annotated[Optional[str], AfterValidator(_none_if_empty)]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ==========================================
# Auth
# ==========================================
class LoginIn(_Payload):
    email: str
    password: str


# ==========================================
# Work lines
# ==========================================
class WorkLineIn(_Payload):
    name: NonBlank
    description: str = ""


class WorkLinePatch(_Payload):
    name: Optional[NonBlank] = None
    description: Optional[str] = None


# ==========================================
# Projects
# ==========================================
class ProjectIn(_Payload):
    name: NonBlank
    objective: str = ""
    assignee: str = ""
    start_date: date
    end_date: date
    status: WorkStatus = "Ready to Start"
    priority: Level = "Medium"
    difficulty: Level = "Medium"
    next_steps: List[str] = Field(default_factory=list)
    notes: str = ""
    budget: float = Field(0.0, ge=0)
    progress: int = Field(0, ge=0, le=100)
    is_auto_progress: bool = True

    @field_validator("next_steps")
    @classmethod
    def _clean_steps(cls, steps: List[str]) -> List[str]:
        return [s.strip() for s in steps if s and s.strip()]

    @model_validator(mode="after")
    def _dates_in_order(self) -> "ProjectIn":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ProjectPatch(_Payload):
    name: Optional[NonBlank] = None
    objective: Optional[str] = None
    assignee: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[WorkStatus] = None
    priority: Optional[Level] = None
    difficulty: Optional[Level] = None
    next_steps: Optional[List[str]] = None
    notes: Optional[str] = None
    budget: Optional[float] = Field(None, ge=0)
    progress: Optional[int] = Field(None, ge=0, le=100)
    is_auto_progress: Optional[bool] = None

    @field_validator("next_steps")
    @classmethod
    def _clean_steps(cls, steps: Optional[List[str]]) -> Optional[List[str]]:
        if steps is None:
            return None
        return [s.strip() for s in steps if s and s.strip()]


# ==========================================
# Tasks
# ==========================================
class ChecklistItemIn(_Payload):
    text: NonBlank


class ChecklistItemPatch(_Payload):
    text: Optional[NonBlank] = None
    completed: Optional[bool] = None


class TaskIn(_Payload):
    project_id: str
    parent_id: OptionalId = None
    title: NonBlank
    assignee: str = ""
    start_date: date
    end_date: date
    status: WorkStatus = "Ready to Start"
    priority: Level = "Medium"
    difficulty: Level = "Medium"
    progress: int = Field(0, ge=0, le=100)
    dependencies: str = ""
    comments: str = ""
    checklist: List[ChecklistItemIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def _dates_in_order(self) -> "TaskIn":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class TaskPatch(_Payload):
    project_id: Optional[str] = None
    parent_id: OptionalId = None
    title: Optional[NonBlank] = None
    assignee: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[WorkStatus] = None
    priority: Optional[Level] = None
    difficulty: Optional[Level] = None
    progress: Optional[int] = Field(None, ge=0, le=100)
    dependencies: Optional[str] = None
    comments: Optional[str] = None


class AttachmentIn(_Payload):
    name: NonBlank
    type: str = "application/octet-stream"
    data: str  # base64


# ==========================================
# Risks
# ==========================================
class RiskIn(_Payload):
    task_id: OptionalId = None
    description: NonBlank
    responsible: NonBlank
    required_action: NonBlank
    status: RiskStatus = "Open"
    priority: Level = "Medium"
    impact: Level = "Medium"
    mitigation_strategy: str = ""


class RiskPatch(_Payload):
    task_id: OptionalId = None
    description: Optional[NonBlank] = None
    responsible: Optional[NonBlank] = None
    required_action: Optional[NonBlank] = None
    status: Optional[RiskStatus] = None
    priority: Optional[Level] = None
    impact: Optional[Level] = None
    mitigation_strategy: Optional[str] = None


# ==========================================
# Reviews
# ==========================================
class MonthlyReviewIn(_Payload):
    summary: str = ""
    achievements: str = ""
    issues: str = ""
    next_steps: str = ""


class GlobalReviewIn(_Payload):
    vision: str = ""
    milestones: str = ""
    attention_areas: str = ""
    strategy: str = ""


# ==========================================
# Users
# ==========================================
class UserIn(_Payload):
    name: NonBlank
    email: NonBlank
    password: Secret
    role: UserRole = "USER"
    assigned_line_id: OptionalId = None


class UserPatch(_Payload):
    name: Optional[NonBlank] = None
    email: Optional[NonBlank] = None
    # blank keeps the current password
    password: Optional[str] = None
    role: Optional[UserRole] = None
    assigned_line_id: OptionalId = None
