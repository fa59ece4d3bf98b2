import base64

from sqlalchemy import func, select

from conftest import create_project, create_task, create_user
from workline.models.models import Attachment, MonthlyReview


def risk_body(**overrides):
    return {"description": "Falta de personal", "responsible": "Ana", "required_action": "Contratar", **overrides}


async def test_risk_crud_and_search(admin_client, line_id):
    url = f"/lines/{line_id}/risks"
    resp = await admin_client.post(url, json=risk_body(impact="High"))
    assert resp.status_code == 201
    risk = (await resp.get_json())["data"]
    assert risk["status"] == "Open"
    assert risk["priority"] == "Medium"
    await admin_client.post(url, json=risk_body(description="Proveedor", responsible="Luis"))

    resp = await admin_client.get(url, query_string={"q": "luis"})
    assert [r["description"] for r in (await resp.get_json())["data"]] == ["Proveedor"]

    resp = await admin_client.patch(f"{url}/{risk['id']}", json={"status": "Mitigated"})
    assert (await resp.get_json())["data"]["status"] == "Mitigated"

    assert (await admin_client.post(url, json=risk_body(responsible=""))).status_code == 400
    assert (await admin_client.delete(f"{url}/{risk['id']}")).status_code == 200
    assert (await admin_client.get(f"{url}/{risk['id']}")).status_code == 404


async def test_risk_task_must_be_in_the_same_line(admin_client, line_id):
    resp = await admin_client.post("/lines", json={"name": "Legal"})
    other_line = (await resp.get_json())["data"]["id"]
    project = await create_project(admin_client, other_line)
    foreign_task = await create_task(admin_client, other_line, project["id"])

    resp = await admin_client.post(f"/lines/{line_id}/risks", json=risk_body(task_id=foreign_task["id"]))
    assert resp.status_code == 400


async def test_dashboard_endpoint(admin_client, line_id):
    project = await create_project(admin_client, line_id, status="In Progress")
    await create_task(admin_client, line_id, project["id"], status="Completed", progress=100)
    await create_task(admin_client, line_id, project["id"], priority="High")
    await admin_client.post(f"/lines/{line_id}/risks", json=risk_body(impact="High"))

    resp = await admin_client.get(f"/lines/{line_id}/dashboard")
    data = (await resp.get_json())["data"]
    assert data["completion_rate"] == 50
    assert data["tasks"]["high_priority_open"] == 1
    assert data["risks"] == {"active": 1, "high_impact_active": 1}
    assert data["active_projects"][0]["progress"] == 50
    assert data["tasks_by_project"] == [
        {"project_id": project["id"], "name": "Portal", "total": 2, "completed": 1}
    ]


async def test_timeline_endpoint(admin_client, line_id):
    project = await create_project(admin_client, line_id)
    task = await create_task(
        admin_client, line_id, project["id"], start_date="2024-05-10", end_date="2024-05-15"
    )
    url = f"/lines/{line_id}/timeline"

    data = (await (await admin_client.get(url, query_string={"date": "2024-05-15"})).get_json())["data"]
    assert data["window_start"] == "2024-05-13"
    assert data["window_end"] == "2024-05-26"
    assert data["tasks"] == [
        {
            "task_id": task["id"],
            "title": "Task",
            "status": "Ready to Start",
            "start_date": "2024-05-10",
            "end_date": "2024-05-15",
            "offset": 0,
            "span": 3,
        }
    ]

    resp = await admin_client.get(url, query_string={"date": "2024-05-15", "shift": "next"})
    data = (await resp.get_json())["data"]
    assert data["window_start"] == "2024-05-27"
    assert data["tasks"] == []

    assert (await admin_client.get(url, query_string={"date": "15/05/2024"})).status_code == 400
    assert (await admin_client.get(url, query_string={"shift": "later"})).status_code == 400
    assert (await admin_client.get(url)).status_code == 200


async def test_global_dashboard_endpoint(admin_client, line_id):
    await create_project(admin_client, line_id, is_auto_progress=False, progress=90)
    resp = await admin_client.get("/global/dashboard")
    data = (await resp.get_json())["data"]
    assert data["active_lines"] == 1
    assert data["global_health"] == 90
    assert data["line_stats"][0]["health_label"] == "optimal"


async def test_line_crud_and_cascade(admin_client, app, line_id):
    resp = await admin_client.post("/lines", json={"name": "Legal", "description": "Contratos"})
    assert resp.status_code == 201
    legal = (await resp.get_json())["data"]["id"]

    resp = await admin_client.get("/lines", query_string={"q": "contr"})
    assert [l["id"] for l in (await resp.get_json())["data"]] == [legal]

    resp = await admin_client.patch(f"/lines/{legal}", json={"name": "Jurídica"})
    assert (await resp.get_json())["data"]["name"] == "Jurídica"
    assert (await admin_client.post("/lines", json={"name": " "})).status_code == 400

    project = await create_project(admin_client, legal)
    task = await create_task(admin_client, legal, project["id"])
    await admin_client.post(f"/lines/{legal}/risks", json=risk_body(task_id=task["id"]))
    await admin_client.put(f"/lines/{legal}/reviews/2024-05", json={"summary": "ok"})
    await admin_client.post(
        f"/lines/{legal}/tasks/{task['id']}/attachments",
        json={"name": "acta.txt", "data": base64.b64encode(b"hola").decode()},
    )
    user = await create_user(admin_client, assigned_line_id=legal)

    assert (await admin_client.delete(f"/lines/{legal}")).status_code == 200
    assert (await admin_client.get(f"/lines/{legal}")).status_code == 404
    assert (await admin_client.get(f"/lines/{legal}/projects")).status_code == 404

    db = app.extensions["db"]
    lines, projects, tasks, risks = await db.global_snapshot()
    assert [l.id for l in lines] == [line_id]
    assert projects == [] and tasks == [] and risks == []
    async with db.Session() as s:
        assert await s.scalar(select(func.count()).select_from(Attachment)) == 0
        assert await s.scalar(select(func.count()).select_from(MonthlyReview)) == 0

    users = (await (await admin_client.get("/users")).get_json())["data"]
    assert next(u for u in users if u["id"] == user["id"])["assigned_line_id"] is None

    # the surviving line is untouched
    assert (await admin_client.get(f"/lines/{line_id}")).status_code == 200
