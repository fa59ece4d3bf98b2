# workline/models/models.py
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: date | datetime | None) -> Optional[str]:
    if value is None:
        return None
    # SQLite hands DateTime(timezone=True) columns back naive; they are stored as UTC
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


class Base(DeclarativeBase):
    pass


class RecordMixin:
    """Integer surrogate key keeps insertion order; ``id`` is the public key."""

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), unique=True, index=True)


class WorkLine(RecordMixin, Base):
    __tablename__ = "work_lines"

    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "created_at": _iso(self.created_at),
        }


class Project(RecordMixin, Base):
    __tablename__ = "projects"

    line_id: Mapped[str] = mapped_column(String(32), index=True)
    name: Mapped[str] = mapped_column(String(200))
    objective: Mapped[str] = mapped_column(Text, default="")
    assignee: Mapped[str] = mapped_column(String(200), default="")
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(32), default="Ready to Start")
    priority: Mapped[str] = mapped_column(String(16), default="Medium")
    difficulty: Mapped[str] = mapped_column(String(16), default="Medium")
    next_steps: Mapped[List[str]] = mapped_column(JSON, default=list)
    notes: Mapped[str] = mapped_column(Text, default="")
    budget: Mapped[float] = mapped_column(Float, default=0.0)
    progress: Mapped[int] = mapped_column(Integer, default=0)
    is_auto_progress: Mapped[bool] = mapped_column(Boolean, default=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "line_id": self.line_id,
            "name": self.name,
            "objective": self.objective or "",
            "assignee": self.assignee or "",
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "status": self.status,
            "priority": self.priority,
            "difficulty": self.difficulty,
            "next_steps": list(self.next_steps or []),
            "notes": self.notes or "",
            "budget": self.budget or 0.0,
            "progress": self.progress or 0,
            "is_auto_progress": bool(self.is_auto_progress),
        }


class Task(RecordMixin, Base):
    __tablename__ = "tasks"

    parent_id: Mapped[Optional[str]] = mapped_column(String(32), index=True, nullable=True)
    line_id: Mapped[str] = mapped_column(String(32), index=True)
    project_id: Mapped[str] = mapped_column(String(32), index=True)
    title: Mapped[str] = mapped_column(String(300))
    assignee: Mapped[str] = mapped_column(String(200), default="")
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(32), default="Ready to Start")
    priority: Mapped[str] = mapped_column(String(16), default="Medium")
    difficulty: Mapped[str] = mapped_column(String(16), default="Medium")
    progress: Mapped[int] = mapped_column(Integer, default=0)
    dependencies: Mapped[str] = mapped_column(Text, default="")
    comments: Mapped[str] = mapped_column(Text, default="")
    # [{"id": ..., "text": ..., "completed": bool}, ...]
    checklist: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list)

    def checklist_progress(self) -> str:
        items = self.checklist or []
        done = sum(1 for i in items if i.get("completed"))
        return f"{done}/{len(items)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "line_id": self.line_id,
            "project_id": self.project_id,
            "title": self.title,
            "assignee": self.assignee or "",
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "status": self.status,
            "priority": self.priority,
            "difficulty": self.difficulty,
            "progress": self.progress or 0,
            "dependencies": self.dependencies or "",
            "comments": self.comments or "",
            "checklist": [dict(i) for i in (self.checklist or [])],
            "checklist_progress": self.checklist_progress(),
        }


class Attachment(RecordMixin, Base):
    __tablename__ = "attachments"

    task_id: Mapped[str] = mapped_column(String(32), index=True)
    name: Mapped[str] = mapped_column(String(300))
    content_type: Mapped[str] = mapped_column(String(128), default="application/octet-stream")
    size: Mapped[int] = mapped_column(Integer, default=0)
    data: Mapped[bytes] = mapped_column(LargeBinary)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        # binary payload is only served by the download endpoint
        return {
            "id": self.id,
            "task_id": self.task_id,
            "name": self.name,
            "type": self.content_type,
            "size": self.size,
            "created_at": _iso(self.created_at),
        }


class Risk(RecordMixin, Base):
    __tablename__ = "risks"

    line_id: Mapped[str] = mapped_column(String(32), index=True)
    task_id: Mapped[Optional[str]] = mapped_column(String(32), index=True, nullable=True)
    description: Mapped[str] = mapped_column(Text)
    responsible: Mapped[str] = mapped_column(String(200))
    required_action: Mapped[str] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), default="Open")
    priority: Mapped[str] = mapped_column(String(16), default="Medium")
    impact: Mapped[str] = mapped_column(String(16), default="Medium")
    mitigation_strategy: Mapped[str] = mapped_column(Text, default="")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "line_id": self.line_id,
            "task_id": self.task_id,
            "description": self.description,
            "responsible": self.responsible,
            "required_action": self.required_action,
            "status": self.status,
            "priority": self.priority,
            "impact": self.impact,
            "mitigation_strategy": self.mitigation_strategy or "",
        }


class MonthlyReview(RecordMixin, Base):
    __tablename__ = "monthly_reviews"
    __table_args__ = (UniqueConstraint("line_id", "month", name="uq_review_line_month"),)

    line_id: Mapped[str] = mapped_column(String(32), index=True)
    month: Mapped[str] = mapped_column(String(7))  # YYYY-MM
    summary: Mapped[str] = mapped_column(Text, default="")
    achievements: Mapped[str] = mapped_column(Text, default="")
    issues: Mapped[str] = mapped_column(Text, default="")
    next_steps: Mapped[str] = mapped_column(Text, default="")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "line_id": self.line_id,
            "month": self.month,
            "summary": self.summary or "",
            "achievements": self.achievements or "",
            "issues": self.issues or "",
            "next_steps": self.next_steps or "",
            "updated_at": _iso(self.updated_at),
        }


class GlobalReview(Base):
    __tablename__ = "global_reviews"

    month: Mapped[str] = mapped_column(String(7), primary_key=True)
    vision: Mapped[str] = mapped_column(Text, default="")
    milestones: Mapped[str] = mapped_column(Text, default="")
    attention_areas: Mapped[str] = mapped_column(Text, default="")
    strategy: Mapped[str] = mapped_column(Text, default="")
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "vision": self.vision or "",
            "milestones": self.milestones or "",
            "attention_areas": self.attention_areas or "",
            "strategy": self.strategy or "",
            "last_updated": _iso(self.last_updated),
        }


class User(RecordMixin, Base):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    role: Mapped[str] = mapped_column(String(8), default="USER")
    password_hash: Mapped[str] = mapped_column(String(256))
    assigned_line_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "assigned_line_id": self.assigned_line_id,
        }


Index("ix_tasks_project_parent", Task.project_id, Task.parent_id)
