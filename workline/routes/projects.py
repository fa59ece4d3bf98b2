# workline/routes/projects.py
from __future__ import annotations

from quart import Blueprint, current_app, request
from quart_schema import validate_request

from workline.models.schemas import ProjectIn, ProjectPatch
from workline.utils.auth import line_access
from workline.utils.helper import response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
projects_bp = Blueprint("projects", __name__)


@projects_bp.get("")
@line_access
async def list_projects(line_id: str):
    projects = await current_app.extensions["db"].list_projects(line_id, request.args.get("q"))
    return response_success([p.to_dict() for p in projects])


@projects_bp.post("")
@line_access
@validate_request(ProjectIn)
async def create_project(line_id: str, data: ProjectIn):
    project = await current_app.extensions["db"].create_project(line_id, data.model_dump())
    return response_success(project.to_dict(), http_status=201)


@projects_bp.get("/<project_id>")
@line_access
async def get_project(line_id: str, project_id: str):
    project = await current_app.extensions["db"].get_project(line_id, project_id)
    return response_success(project.to_dict())


@projects_bp.patch("/<project_id>")
@line_access
@validate_request(ProjectPatch)
async def update_project(line_id: str, project_id: str, data: ProjectPatch):
    project = await current_app.extensions["db"].update_project(
        line_id, project_id, data.model_dump(exclude_unset=True)
    )
    return response_success(project.to_dict())


@projects_bp.delete("/<project_id>")
@line_access
async def delete_project(line_id: str, project_id: str):
    await current_app.extensions["db"].delete_project(line_id, project_id)
    return response_success(None, message="Project deleted")
