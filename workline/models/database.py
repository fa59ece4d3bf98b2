# workline/models/database.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from werkzeug.security import check_password_hash, generate_password_hash

from workline.models.models import (
    Attachment,
    Base,
    GlobalReview,
    MonthlyReview,
    Project,
    Risk,
    Task,
    User,
    WorkLine,
)
from workline.services.analytics.progress import apply_auto_progress
from workline.utils.errors import ConflictError, DomainValidationError, NotFoundError
from workline.utils.helper import new_id
from workline.utils.logger import get_logger


logger = get_logger(__name__)

# columns a PATCH may explicitly reset to null
NULLABLE_FIELDS = {"parent_id", "task_id", "assigned_line_id"}


def _matches(term: Optional[str], *fields: Optional[str]) -> bool:
    if not term or not term.strip():
        return True
    needle = term.strip().casefold()
    return any(needle in (f or "").casefold() for f in fields)


def _clean_patch(data: Dict[str, Any]) -> Dict[str, Any]:
    """Drop ``None`` for columns that cannot be null."""
    return {k: v for k, v in data.items() if v is not None or k in NULLABLE_FIELDS}


class ModelDB:
    """Async SQLAlchemy store for every Workline record type."""

    def __init__(self, db_url: str, echo: bool = False):
        self.db_url = db_url
        self._initialized = False

        try:
            self._engine = create_async_engine(self.db_url, echo=echo, future=True)
            self.Session = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            logger.info("ModelDB initialized with DB: %s", self.db_url)
        except SQLAlchemyError as e:
            logger.error("Failed to initialise database: %s", e)
            raise

    def _ensure_sqlite_dir(self) -> None:
        url = make_url(self.db_url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    async def init_models(self) -> None:
        """Create the tables once."""
        if self._initialized:
            return
        self._ensure_sqlite_dir()
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._initialized = True

    async def dispose(self) -> None:
        await self._engine.dispose()

    async def seed_defaults(self, configs: Any) -> None:
        """Default line when there is none; bootstrap admin when there are no users."""
        async with self.Session() as s:
            try:
                line_count = await s.scalar(select(func.count()).select_from(WorkLine))
                if not line_count:
                    s.add(
                        WorkLine(
                            id=new_id("line"),
                            name=configs.default_line_name,
                            description=configs.default_line_description,
                        )
                    )
                    logger.info("Seeded default line '%s'", configs.default_line_name)

                user_count = await s.scalar(select(func.count()).select_from(User))
                if not user_count:
                    s.add(
                        User(
                            id=new_id("user"),
                            name=configs.admin_name,
                            email=configs.admin_email.strip().lower(),
                            role="ADMIN",
                            password_hash=generate_password_hash(configs.admin_password),
                        )
                    )
                    logger.info("Seeded bootstrap admin %s", configs.admin_email)
                await s.commit()
            except SQLAlchemyError as ex:
                await s.rollback()
                logger.error("Failed to seed defaults: %s", ex)
                raise

    # * --------------------------------------------------
    # * shared lookups
    # * --------------------------------------------------
    @staticmethod
    async def _one(s: AsyncSession, model, kind: str, record_id: str, **scope):
        stmt = select(model).where(model.id == record_id)
        for col, value in scope.items():
            stmt = stmt.where(getattr(model, col) == value)
        obj = (await s.execute(stmt)).scalars().first()
        if obj is None:
            raise NotFoundError(kind, record_id)
        return obj

    @staticmethod
    async def _all(s: AsyncSession, stmt) -> List[Any]:
        return list((await s.execute(stmt)).scalars().all())

    async def _line(self, s: AsyncSession, line_id: str) -> WorkLine:
        return await self._one(s, WorkLine, "line", line_id)

    async def _rollup(self, s: AsyncSession, project_ids: Iterable[str]) -> None:
        for project_id in {p for p in project_ids if p}:
            project = (
                await s.execute(select(Project).where(Project.id == project_id))
            ).scalars().first()
            if project is None:
                continue
            tasks = await self._all(s, select(Task).where(Task.project_id == project_id))
            if apply_auto_progress(project, tasks):
                logger.info("Project %s progress -> %s", project_id, project.progress)

    # * --------------------------------------------------
    # * work lines
    # * --------------------------------------------------
    async def list_lines(self, q: Optional[str] = None) -> List[WorkLine]:
        async with self.Session() as s:
            rows = await self._all(s, select(WorkLine).order_by(WorkLine.pk))
        return [r for r in rows if _matches(q, r.name, r.description)]

    async def get_line(self, line_id: str) -> WorkLine:
        async with self.Session() as s:
            return await self._line(s, line_id)

    async def create_line(self, data: Dict[str, Any]) -> WorkLine:
        async with self.Session() as s:
            line = WorkLine(id=new_id("line"), **data)
            s.add(line)
            await s.commit()
        logger.info("Created line %s (%s)", line.id, line.name)
        return line

    async def update_line(self, line_id: str, data: Dict[str, Any]) -> WorkLine:
        async with self.Session() as s:
            line = await self._line(s, line_id)
            for key, value in _clean_patch(data).items():
                setattr(line, key, value)
            await s.commit()
        logger.info("Updated line %s", line_id)
        return line

    async def delete_line(self, line_id: str) -> None:
        """Delete a line and everything scoped to it; assigned users are unassigned."""
        async with self.Session() as s:
            try:
                line = await self._line(s, line_id)
                task_ids = select(Task.id).where(Task.line_id == line_id)
                await s.execute(delete(Attachment).where(Attachment.task_id.in_(task_ids)))
                await s.execute(delete(Task).where(Task.line_id == line_id))
                await s.execute(delete(Project).where(Project.line_id == line_id))
                await s.execute(delete(Risk).where(Risk.line_id == line_id))
                await s.execute(delete(MonthlyReview).where(MonthlyReview.line_id == line_id))
                await s.execute(
                    update(User)
                    .where(User.assigned_line_id == line_id)
                    .values(assigned_line_id=None)
                )
                await s.delete(line)
                await s.commit()
            except SQLAlchemyError as ex:
                await s.rollback()
                logger.error("Failed to delete line %s: %s", line_id, ex)
                raise
        logger.info("Deleted line %s with its projects, tasks, risks and reviews", line_id)

    # * --------------------------------------------------
    # * projects
    # * --------------------------------------------------
    async def list_projects(self, line_id: str, q: Optional[str] = None) -> List[Project]:
        async with self.Session() as s:
            await self._line(s, line_id)
            rows = await self._all(
                s, select(Project).where(Project.line_id == line_id).order_by(Project.pk)
            )
        return [p for p in rows if _matches(q, p.name, p.assignee)]

    async def get_project(self, line_id: str, project_id: str) -> Project:
        async with self.Session() as s:
            return await self._one(s, Project, "project", project_id, line_id=line_id)

    async def create_project(self, line_id: str, data: Dict[str, Any]) -> Project:
        async with self.Session() as s:
            await self._line(s, line_id)
            project = Project(id=new_id("proj"), line_id=line_id, **data)
            if project.is_auto_progress:
                # a new project has no tasks yet
                project.progress = 0
            s.add(project)
            await s.commit()
        logger.info("Created project %s in line %s", project.id, line_id)
        return project

    async def update_project(
        self, line_id: str, project_id: str, data: Dict[str, Any]
    ) -> Project:
        async with self.Session() as s:
            project = await self._one(s, Project, "project", project_id, line_id=line_id)
            for key, value in _clean_patch(data).items():
                setattr(project, key, value)
            if project.end_date < project.start_date:
                raise DomainValidationError("end_date must not be before start_date")
            if project.is_auto_progress:
                await self._rollup(s, [project.id])
            await s.commit()
        logger.info("Updated project %s", project_id)
        return project

    async def delete_project(self, line_id: str, project_id: str) -> None:
        async with self.Session() as s:
            try:
                project = await self._one(s, Project, "project", project_id, line_id=line_id)
                task_ids = select(Task.id).where(Task.project_id == project_id)
                await s.execute(
                    update(Risk).where(Risk.task_id.in_(task_ids)).values(task_id=None)
                )
                await s.execute(delete(Attachment).where(Attachment.task_id.in_(task_ids)))
                await s.execute(delete(Task).where(Task.project_id == project_id))
                await s.delete(project)
                await s.commit()
            except SQLAlchemyError as ex:
                await s.rollback()
                logger.error("Failed to delete project %s: %s", project_id, ex)
                raise
        logger.info("Deleted project %s and its tasks", project_id)

    # * --------------------------------------------------
    # * tasks
    # * --------------------------------------------------
    async def task_groups(
        self,
        line_id: str,
        q: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Tasks grouped by project: top-level tasks with their subtasks nested.

        A group is kept when its project name or any of its top-level task
        titles matches ``q``.
        """
        async with self.Session() as s:
            await self._line(s, line_id)
            projects = await self._all(
                s, select(Project).where(Project.line_id == line_id).order_by(Project.pk)
            )
            tasks = await self._all(
                s, select(Task).where(Task.line_id == line_id).order_by(Task.pk)
            )
            attachments = await self._attachments_by_task(s, [t.id for t in tasks])

        def payload(task: Task) -> Dict[str, Any]:
            data = task.to_dict()
            data["attachments"] = [a.to_dict() for a in attachments.get(task.id, [])]
            return data

        groups = []
        for project in projects:
            if project_id and project.id != project_id:
                continue
            top = [t for t in tasks if t.project_id == project.id and not t.parent_id]
            if not (_matches(q, project.name) or any(_matches(q, t.title) for t in top)):
                continue
            rows = []
            for t in top:
                row = payload(t)
                row["subtasks"] = [payload(c) for c in tasks if c.parent_id == t.id]
                rows.append(row)
            groups.append({"project": project.to_dict(), "tasks": rows})
        return groups

    async def get_task(self, line_id: str, task_id: str) -> Tuple[Task, List[Attachment]]:
        async with self.Session() as s:
            task = await self._one(s, Task, "task", task_id, line_id=line_id)
            attachments = await self._attachments_by_task(s, [task.id])
        return task, attachments.get(task.id, [])

    async def _check_placement(
        self,
        s: AsyncSession,
        line_id: str,
        project_id: str,
        parent_id: Optional[str],
        task_id: Optional[str] = None,
    ) -> None:
        project = (
            await s.execute(select(Project).where(Project.id == project_id))
        ).scalars().first()
        if project is None or project.line_id != line_id:
            raise DomainValidationError(f"project '{project_id}' does not belong to this line")
        if not parent_id:
            return
        if parent_id == task_id:
            raise DomainValidationError("a task cannot be its own parent")
        parent = (await s.execute(select(Task).where(Task.id == parent_id))).scalars().first()
        if parent is None or parent.line_id != line_id:
            raise DomainValidationError(f"parent task '{parent_id}' does not belong to this line")
        if parent.parent_id:
            raise DomainValidationError("subtasks cannot have subtasks")
        if parent.project_id != project_id:
            raise DomainValidationError("a subtask must belong to its parent's project")
        if task_id:
            children = await s.scalar(
                select(func.count()).select_from(Task).where(Task.parent_id == task_id)
            )
            if children:
                raise DomainValidationError("a task with subtasks cannot become a subtask")

    async def create_task(self, line_id: str, data: Dict[str, Any]) -> Task:
        checklist = [
            {"id": new_id("check"), "text": item["text"], "completed": False}
            for item in data.pop("checklist", [])
        ]
        async with self.Session() as s:
            await self._line(s, line_id)
            await self._check_placement(s, line_id, data["project_id"], data.get("parent_id"))
            task = Task(id=new_id("task"), line_id=line_id, checklist=checklist, **data)
            s.add(task)
            await s.flush()
            await self._rollup(s, [task.project_id])
            await s.commit()
        logger.info("Created task %s in project %s", task.id, task.project_id)
        return task

    async def update_task(self, line_id: str, task_id: str, data: Dict[str, Any]) -> Task:
        data = _clean_patch(data)
        async with self.Session() as s:
            task = await self._one(s, Task, "task", task_id, line_id=line_id)
            old_project = task.project_id
            project_id = data.get("project_id", task.project_id)
            parent_id = data["parent_id"] if "parent_id" in data else task.parent_id

            if "project_id" in data or "parent_id" in data:
                await self._check_placement(s, line_id, project_id, parent_id, task_id=task.id)

            for key, value in data.items():
                setattr(task, key, value)
            if task.end_date < task.start_date:
                raise DomainValidationError("end_date must not be before start_date")

            if project_id != old_project:
                # subtasks follow their parent
                await s.execute(
                    update(Task).where(Task.parent_id == task.id).values(project_id=project_id)
                )
            await s.flush()
            await self._rollup(s, [old_project, project_id])
            await s.commit()
        logger.info("Updated task %s", task_id)
        return task

    async def delete_task(self, line_id: str, task_id: str) -> None:
        """Delete a task with its subtasks and attachments; linked risks are unlinked."""
        async with self.Session() as s:
            try:
                task = await self._one(s, Task, "task", task_id, line_id=line_id)
                ids = [task.id] + list(
                    (await s.execute(select(Task.id).where(Task.parent_id == task.id))).scalars()
                )
                await s.execute(update(Risk).where(Risk.task_id.in_(ids)).values(task_id=None))
                await s.execute(delete(Attachment).where(Attachment.task_id.in_(ids)))
                await s.execute(delete(Task).where(Task.id.in_(ids)))
                await self._rollup(s, [task.project_id])
                await s.commit()
            except SQLAlchemyError as ex:
                await s.rollback()
                logger.error("Failed to delete task %s: %s", task_id, ex)
                raise
        logger.info("Deleted task %s (%d with subtasks)", task_id, len(ids))

    # * --------------------------------------------------
    # * checklist
    # * --------------------------------------------------
    async def add_checklist_item(self, line_id: str, task_id: str, text: str) -> Task:
        async with self.Session() as s:
            task = await self._one(s, Task, "task", task_id, line_id=line_id)
            # JSON columns only track reassignment
            task.checklist = list(task.checklist or []) + [
                {"id": new_id("check"), "text": text, "completed": False}
            ]
            await s.commit()
        logger.info("Checklist item added to task %s", task_id)
        return task

    async def update_checklist_item(
        self, line_id: str, task_id: str, item_id: str, data: Dict[str, Any]
    ) -> Task:
        async with self.Session() as s:
            task = await self._one(s, Task, "task", task_id, line_id=line_id)
            items = [dict(i) for i in (task.checklist or [])]
            item = next((i for i in items if i.get("id") == item_id), None)
            if item is None:
                raise NotFoundError("checklist item", item_id)
            item.update(_clean_patch(data))
            task.checklist = items
            await s.commit()
        logger.info("Checklist item %s updated on task %s", item_id, task_id)
        return task

    async def remove_checklist_item(self, line_id: str, task_id: str, item_id: str) -> Task:
        async with self.Session() as s:
            task = await self._one(s, Task, "task", task_id, line_id=line_id)
            items = list(task.checklist or [])
            kept = [i for i in items if i.get("id") != item_id]
            if len(kept) == len(items):
                raise NotFoundError("checklist item", item_id)
            task.checklist = kept
            await s.commit()
        logger.info("Checklist item %s removed from task %s", item_id, task_id)
        return task

    # * --------------------------------------------------
    # * attachments
    # * --------------------------------------------------
    @staticmethod
    async def _attachments_by_task(
        s: AsyncSession, task_ids: Sequence[str]
    ) -> Dict[str, List[Attachment]]:
        if not task_ids:
            return {}
        rows = (
            await s.execute(
                select(Attachment)
                .where(Attachment.task_id.in_(list(task_ids)))
                .order_by(Attachment.pk)
            )
        ).scalars()
        grouped: Dict[str, List[Attachment]] = {}
        for a in rows:
            grouped.setdefault(a.task_id, []).append(a)
        return grouped

    async def add_attachment(
        self,
        line_id: str,
        task_id: str,
        name: str,
        content_type: str,
        data: bytes,
        max_bytes: int,
    ) -> Attachment:
        if len(data) > max_bytes:
            raise DomainValidationError(
                f"attachment exceeds the {max_bytes} byte limit ({len(data)} bytes)"
            )
        async with self.Session() as s:
            await self._one(s, Task, "task", task_id, line_id=line_id)
            att = Attachment(
                id=new_id("att"),
                task_id=task_id,
                name=name,
                content_type=content_type or "application/octet-stream",
                size=len(data),
                data=data,
            )
            s.add(att)
            await s.commit()
        logger.info("Attachment %s (%d bytes) added to task %s", att.id, att.size, task_id)
        return att

    async def get_attachment(self, line_id: str, task_id: str, attachment_id: str) -> Attachment:
        async with self.Session() as s:
            await self._one(s, Task, "task", task_id, line_id=line_id)
            return await self._one(
                s, Attachment, "attachment", attachment_id, task_id=task_id
            )

    async def delete_attachment(self, line_id: str, task_id: str, attachment_id: str) -> None:
        async with self.Session() as s:
            await self._one(s, Task, "task", task_id, line_id=line_id)
            att = await self._one(s, Attachment, "attachment", attachment_id, task_id=task_id)
            await s.delete(att)
            await s.commit()
        logger.info("Attachment %s removed from task %s", attachment_id, task_id)

    # * --------------------------------------------------
    # * risks
    # * --------------------------------------------------
    async def _check_risk_task(self, s: AsyncSession, line_id: str, task_id: Optional[str]) -> None:
        if not task_id:
            return
        task = (await s.execute(select(Task).where(Task.id == task_id))).scalars().first()
        if task is None or task.line_id != line_id:
            raise DomainValidationError(f"task '{task_id}' does not belong to this line")

    async def list_risks(self, line_id: str, q: Optional[str] = None) -> List[Risk]:
        async with self.Session() as s:
            await self._line(s, line_id)
            rows = await self._all(
                s, select(Risk).where(Risk.line_id == line_id).order_by(Risk.pk)
            )
        return [r for r in rows if _matches(q, r.description, r.responsible)]

    async def get_risk(self, line_id: str, risk_id: str) -> Risk:
        async with self.Session() as s:
            return await self._one(s, Risk, "risk", risk_id, line_id=line_id)

    async def create_risk(self, line_id: str, data: Dict[str, Any]) -> Risk:
        async with self.Session() as s:
            await self._line(s, line_id)
            await self._check_risk_task(s, line_id, data.get("task_id"))
            risk = Risk(id=new_id("risk"), line_id=line_id, **data)
            s.add(risk)
            await s.commit()
        logger.info("Created risk %s in line %s", risk.id, line_id)
        return risk

    async def update_risk(self, line_id: str, risk_id: str, data: Dict[str, Any]) -> Risk:
        data = _clean_patch(data)
        async with self.Session() as s:
            risk = await self._one(s, Risk, "risk", risk_id, line_id=line_id)
            if "task_id" in data:
                await self._check_risk_task(s, line_id, data["task_id"])
            for key, value in data.items():
                setattr(risk, key, value)
            await s.commit()
        logger.info("Updated risk %s", risk_id)
        return risk

    async def delete_risk(self, line_id: str, risk_id: str) -> None:
        async with self.Session() as s:
            risk = await self._one(s, Risk, "risk", risk_id, line_id=line_id)
            await s.delete(risk)
            await s.commit()
        logger.info("Deleted risk %s", risk_id)

    # * --------------------------------------------------
    # * snapshots for aggregates
    # * --------------------------------------------------
    async def line_snapshot(self, line_id: str) -> Tuple[List[Project], List[Task], List[Risk]]:
        async with self.Session() as s:
            await self._line(s, line_id)
            projects = await self._all(
                s, select(Project).where(Project.line_id == line_id).order_by(Project.pk)
            )
            tasks = await self._all(
                s, select(Task).where(Task.line_id == line_id).order_by(Task.pk)
            )
            risks = await self._all(
                s, select(Risk).where(Risk.line_id == line_id).order_by(Risk.pk)
            )
        return projects, tasks, risks

    async def global_snapshot(
        self,
    ) -> Tuple[List[WorkLine], List[Project], List[Task], List[Risk]]:
        async with self.Session() as s:
            lines = await self._all(s, select(WorkLine).order_by(WorkLine.pk))
            projects = await self._all(s, select(Project).order_by(Project.pk))
            tasks = await self._all(s, select(Task).order_by(Task.pk))
            risks = await self._all(s, select(Risk).order_by(Risk.pk))
        return lines, projects, tasks, risks

    # * --------------------------------------------------
    # * monthly reviews
    # * --------------------------------------------------
    async def list_reviews(self, line_id: str) -> List[MonthlyReview]:
        async with self.Session() as s:
            await self._line(s, line_id)
            return await self._all(
                s,
                select(MonthlyReview)
                .where(MonthlyReview.line_id == line_id)
                .order_by(MonthlyReview.month.desc()),
            )

    async def get_review(self, line_id: str, month: str) -> Optional[MonthlyReview]:
        async with self.Session() as s:
            await self._line(s, line_id)
            return (
                await s.execute(
                    select(MonthlyReview).where(
                        MonthlyReview.line_id == line_id, MonthlyReview.month == month
                    )
                )
            ).scalars().first()

    async def upsert_review(
        self, line_id: str, month: str, data: Dict[str, Any]
    ) -> MonthlyReview:
        async with self.Session() as s:
            await self._line(s, line_id)
            review = (
                await s.execute(
                    select(MonthlyReview).where(
                        MonthlyReview.line_id == line_id, MonthlyReview.month == month
                    )
                )
            ).scalars().first()
            if review is None:
                review = MonthlyReview(id=new_id("review"), line_id=line_id, month=month)
                s.add(review)
            for key, value in data.items():
                setattr(review, key, value)
            await s.commit()
        logger.info("Saved review %s for line %s", month, line_id)
        return review

    async def delete_review(self, line_id: str, month: str) -> None:
        async with self.Session() as s:
            await self._line(s, line_id)
            result = await s.execute(
                delete(MonthlyReview).where(
                    MonthlyReview.line_id == line_id, MonthlyReview.month == month
                )
            )
            if not result.rowcount:
                raise NotFoundError("review", f"{line_id}/{month}")
            await s.commit()
        logger.info("Deleted review %s for line %s", month, line_id)

    # * --------------------------------------------------
    # * global reviews
    # * --------------------------------------------------
    async def get_global_review(self, month: str) -> Optional[GlobalReview]:
        async with self.Session() as s:
            return await s.get(GlobalReview, month)

    async def upsert_global_review(self, month: str, data: Dict[str, Any]) -> GlobalReview:
        async with self.Session() as s:
            review = await s.get(GlobalReview, month)
            if review is None:
                review = GlobalReview(month=month)
                s.add(review)
            for key, value in data.items():
                setattr(review, key, value)
            await s.commit()
        logger.info("Saved global review %s", month)
        return review

    # * --------------------------------------------------
    # * users
    # * --------------------------------------------------
    async def list_users(self, q: Optional[str] = None) -> List[User]:
        async with self.Session() as s:
            rows = await self._all(s, select(User).order_by(User.pk))
        return [u for u in rows if _matches(q, u.name, u.email)]

    async def get_user(self, user_id: str) -> User:
        async with self.Session() as s:
            return await self._one(s, User, "user", user_id)

    async def _check_email_free(
        self, s: AsyncSession, email: str, exclude_id: Optional[str] = None
    ) -> None:
        stmt = select(User).where(func.lower(User.email) == email)
        if exclude_id:
            stmt = stmt.where(User.id != exclude_id)
        if (await s.execute(stmt)).scalars().first() is not None:
            raise ConflictError(f"email '{email}' is already registered")

    async def _check_assignment(
        self, s: AsyncSession, role: str, line_id: Optional[str]
    ) -> Optional[str]:
        if role == "ADMIN":
            return None
        if not line_id:
            raise DomainValidationError("a USER must be assigned to a line")
        await self._line(s, line_id)
        return line_id

    async def _admin_count(self, s: AsyncSession) -> int:
        return await s.scalar(
            select(func.count()).select_from(User).where(User.role == "ADMIN")
        ) or 0

    async def create_user(self, data: Dict[str, Any]) -> User:
        email = data["email"].strip().lower()
        async with self.Session() as s:
            await self._check_email_free(s, email)
            try:
                line_id = await self._check_assignment(s, data["role"], data.get("assigned_line_id"))
            except NotFoundError as ex:
                raise DomainValidationError(ex.message) from ex
            user = User(
                id=new_id("user"),
                name=data["name"],
                email=email,
                role=data["role"],
                password_hash=generate_password_hash(data["password"]),
                assigned_line_id=line_id,
            )
            s.add(user)
            await s.commit()
        logger.info("Created user %s (%s)", user.id, user.role)
        return user

    async def update_user(self, user_id: str, data: Dict[str, Any]) -> User:
        data = _clean_patch(data)
        async with self.Session() as s:
            user = await self._one(s, User, "user", user_id)

            if "email" in data:
                email = data["email"].strip().lower()
                await self._check_email_free(s, email, exclude_id=user.id)
                user.email = email
            if "name" in data:
                user.name = data["name"]
            password = data.get("password") or ""
            if password.strip():
                user.password_hash = generate_password_hash(password)

            role = data.get("role", user.role)
            if user.is_admin and role != "ADMIN" and await self._admin_count(s) <= 1:
                raise ConflictError("the last administrator cannot be demoted")
            # an orphaned USER can still be renamed; placement is checked when it changes
            if "role" in data or "assigned_line_id" in data:
                line_id = data["assigned_line_id"] if "assigned_line_id" in data else user.assigned_line_id
                try:
                    user.assigned_line_id = await self._check_assignment(s, role, line_id)
                except NotFoundError as ex:
                    raise DomainValidationError(ex.message) from ex
            user.role = role
            await s.commit()
        logger.info("Updated user %s", user_id)
        return user

    async def delete_user(self, user_id: str, acting_user_id: Optional[str] = None) -> None:
        if user_id == acting_user_id:
            raise ConflictError("you cannot delete your own account")
        async with self.Session() as s:
            user = await self._one(s, User, "user", user_id)
            if user.is_admin and await self._admin_count(s) <= 1:
                raise ConflictError("the last administrator cannot be deleted")
            await s.delete(user)
            await s.commit()
        logger.info("Deleted user %s", user_id)

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        async with self.Session() as s:
            user = (
                await s.execute(
                    select(User).where(func.lower(User.email) == (email or "").strip().lower())
                )
            ).scalars().first()
        if user is None or not check_password_hash(user.password_hash, password or ""):
            logger.info("Failed login for %s", email)
            return None
        logger.info("User %s logged in", user.id)
        return user
