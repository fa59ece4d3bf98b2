# workline/routes/tasks.py
"""
Task endpoints, including the checklist and attachment sub-resources.

Attachments arrive either as a multipart ``file`` field or as JSON with a
base64 (or ``data:`` URL) payload; the binary is only ever returned by the
download endpoint.
"""

from __future__ import annotations

import base64
import binascii
import re
from urllib.parse import quote

from pydantic import ValidationError
from quart import Blueprint, Response, current_app, request
from quart_schema import validate_request

from workline.models.schemas import (
    AttachmentIn,
    ChecklistItemIn,
    ChecklistItemPatch,
    TaskIn,
    TaskPatch,
)
from workline.utils.auth import line_access
from workline.utils.errors import DomainValidationError
from workline.utils.helper import response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
tasks_bp = Blueprint("tasks", __name__)

_DATA_URL_RE = re.compile(r"^data:(?P<type>[^;,]*)(;base64)?,(?P<data>.*)$", re.DOTALL)


def _task_payload(task, attachments) -> dict:
    data = task.to_dict()
    data["attachments"] = [a.to_dict() for a in attachments]
    return data


# ==========================================
# Tasks
# ==========================================
@tasks_bp.get("")
@line_access
async def list_tasks(line_id: str):
    """Project groups with nested subtasks; ``q`` matches task titles or project names."""
    groups = await current_app.extensions["db"].task_groups(
        line_id,
        q=request.args.get("q"),
        project_id=request.args.get("project_id") or None,
    )
    return response_success(groups)


@tasks_bp.post("")
@line_access
@validate_request(TaskIn)
async def create_task(line_id: str, data: TaskIn):
    task = await current_app.extensions["db"].create_task(line_id, data.model_dump())
    return response_success(_task_payload(task, []), http_status=201)


@tasks_bp.get("/<task_id>")
@line_access
async def get_task(line_id: str, task_id: str):
    task, attachments = await current_app.extensions["db"].get_task(line_id, task_id)
    return response_success(_task_payload(task, attachments))


@tasks_bp.patch("/<task_id>")
@line_access
@validate_request(TaskPatch)
async def update_task(line_id: str, task_id: str, data: TaskPatch):
    db = current_app.extensions["db"]
    await db.update_task(line_id, task_id, data.model_dump(exclude_unset=True))
    task, attachments = await db.get_task(line_id, task_id)
    return response_success(_task_payload(task, attachments))


@tasks_bp.delete("/<task_id>")
@line_access
async def delete_task(line_id: str, task_id: str):
    await current_app.extensions["db"].delete_task(line_id, task_id)
    return response_success(None, message="Task deleted")


# ==========================================
# Checklist
# ==========================================
@tasks_bp.post("/<task_id>/checklist")
@line_access
@validate_request(ChecklistItemIn)
async def add_checklist_item(line_id: str, task_id: str, data: ChecklistItemIn):
    task = await current_app.extensions["db"].add_checklist_item(line_id, task_id, data.text)
    return response_success(task.to_dict(), http_status=201)


@tasks_bp.patch("/<task_id>/checklist/<item_id>")
@line_access
@validate_request(ChecklistItemPatch)
async def update_checklist_item(line_id: str, task_id: str, item_id: str, data: ChecklistItemPatch):
    task = await current_app.extensions["db"].update_checklist_item(
        line_id, task_id, item_id, data.model_dump(exclude_unset=True)
    )
    return response_success(task.to_dict())


@tasks_bp.delete("/<task_id>/checklist/<item_id>")
@line_access
async def remove_checklist_item(line_id: str, task_id: str, item_id: str):
    task = await current_app.extensions["db"].remove_checklist_item(line_id, task_id, item_id)
    return response_success(task.to_dict())


# ==========================================
# Attachments
# ==========================================
def _decode_base64(payload: AttachmentIn) -> tuple[bytes, str]:
    raw, content_type = payload.data, payload.type
    m = _DATA_URL_RE.match(raw.strip())
    if m:
        raw = m.group("data")
        if m.group("type") and content_type == "application/octet-stream":
            content_type = m.group("type")
    try:
        return base64.b64decode(raw, validate=True), content_type
    except (binascii.Error, ValueError) as e:
        raise DomainValidationError("attachment data is not valid base64") from e


async def _read_upload() -> tuple[str, str, bytes]:
    files = await request.files
    upload = files.get("file")
    if upload is not None:
        if not upload.filename:
            raise DomainValidationError("uploaded file has no name")
        return upload.filename, upload.mimetype or "application/octet-stream", upload.read()

    body = await request.get_json(silent=True)
    if body is None:
        raise DomainValidationError("send a multipart 'file' field or a JSON body")
    try:
        payload = AttachmentIn.model_validate(body)
    except ValidationError as e:
        raise DomainValidationError(f"invalid attachment payload: {e.errors()[0]['msg']}") from e
    data, content_type = _decode_base64(payload)
    return payload.name, content_type, data


@tasks_bp.post("/<task_id>/attachments")
@line_access
async def add_attachment(line_id: str, task_id: str):
    name, content_type, data = await _read_upload()
    att = await current_app.extensions["db"].add_attachment(
        line_id,
        task_id,
        name,
        content_type,
        data,
        max_bytes=current_app.extensions["service_configs"].max_attachment_bytes,
    )
    return response_success(att.to_dict(), http_status=201)


@tasks_bp.get("/<task_id>/attachments/<attachment_id>")
@line_access
async def download_attachment(line_id: str, task_id: str, attachment_id: str):
    att = await current_app.extensions["db"].get_attachment(line_id, task_id, attachment_id)
    return Response(
        att.data,
        mimetype=att.content_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(att.name)}"},
    )


@tasks_bp.delete("/<task_id>/attachments/<attachment_id>")
@line_access
async def delete_attachment(line_id: str, task_id: str, attachment_id: str):
    await current_app.extensions["db"].delete_attachment(line_id, task_id, attachment_id)
    return response_success(None, message="Attachment deleted")
