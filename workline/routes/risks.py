# workline/routes/risks.py
from __future__ import annotations

from quart import Blueprint, current_app, request
from quart_schema import validate_request

from workline.models.schemas import RiskIn, RiskPatch
from workline.utils.auth import line_access
from workline.utils.helper import response_success
from workline.utils.logger import get_logger


logger = get_logger(__name__)
risks_bp = Blueprint("risks", __name__)


@risks_bp.get("")
@line_access
async def list_risks(line_id: str):
    risks = await current_app.extensions["db"].list_risks(line_id, request.args.get("q"))
    return response_success([r.to_dict() for r in risks])


@risks_bp.post("")
@line_access
@validate_request(RiskIn)
async def create_risk(line_id: str, data: RiskIn):
    risk = await current_app.extensions["db"].create_risk(line_id, data.model_dump())
    return response_success(risk.to_dict(), http_status=201)


@risks_bp.get("/<risk_id>")
@line_access
async def get_risk(line_id: str, risk_id: str):
    risk = await current_app.extensions["db"].get_risk(line_id, risk_id)
    return response_success(risk.to_dict())


@risks_bp.patch("/<risk_id>")
@line_access
@validate_request(RiskPatch)
async def update_risk(line_id: str, risk_id: str, data: RiskPatch):
    risk = await current_app.extensions["db"].update_risk(
        line_id, risk_id, data.model_dump(exclude_unset=True)
    )
    return response_success(risk.to_dict())


@risks_bp.delete("/<risk_id>")
@line_access
async def delete_risk(line_id: str, risk_id: str):
    await current_app.extensions["db"].delete_risk(line_id, risk_id)
    return response_success(None, message="Risk deleted")
