import base64
from io import BytesIO

from werkzeug.datastructures import FileStorage

from conftest import create_project, create_task


async def get_json(client, url, **kwargs):
    resp = await client.get(url, **kwargs)
    assert resp.status_code == 200, await resp.get_json()
    return (await resp.get_json())["data"]


# ==========================================
# Projects
# ==========================================
async def test_project_crud_and_search(admin_client, line_id):
    project = await create_project(
        admin_client, line_id, assignee="Marta", next_steps=["  Kickoff ", "", "QA"]
    )
    assert project["id"].startswith("proj-")
    assert project["next_steps"] == ["Kickoff", "QA"]
    assert project["status"] == "Ready to Start"
    await create_project(admin_client, line_id, name="Intranet", assignee="Pablo")

    found = await get_json(admin_client, f"/lines/{line_id}/projects", query_string={"q": "marta"})
    assert [p["id"] for p in found] == [project["id"]]

    url = f"/lines/{line_id}/projects/{project['id']}"
    resp = await admin_client.patch(url, json={"status": "In Progress", "budget": 1500})
    data = (await resp.get_json())["data"]
    assert data["status"] == "In Progress"
    assert data["budget"] == 1500

    resp = await admin_client.patch(url, json={"end_date": "2024-01-01"})
    assert resp.status_code == 400

    assert (await admin_client.delete(url)).status_code == 200
    assert (await admin_client.get(url)).status_code == 404


async def test_project_payload_validation(admin_client, line_id):
    url = f"/lines/{line_id}/projects"
    bad = [
        {"name": "  ", "start_date": "2024-05-01", "end_date": "2024-05-02"},
        {"name": "X", "start_date": "2024-05-02", "end_date": "2024-05-01"},
        {"name": "X", "start_date": "2024-05-01", "end_date": "2024-05-02", "budget": -1},
        {"name": "X", "start_date": "2024-05-01", "end_date": "2024-05-02", "status": "Done"},
        {"name": "X", "start_date": "2024-05-01", "end_date": "2024-05-02", "progress": 101},
    ]
    for body in bad:
        resp = await admin_client.post(url, json=body)
        assert resp.status_code == 400, body


async def test_unknown_line_is_404(admin_client):
    resp = await admin_client.get("/lines/line-missing/projects")
    assert resp.status_code == 404


# ==========================================
# Progress roll-up
# ==========================================
async def test_auto_progress_follows_top_level_tasks(admin_client, line_id):
    project = await create_project(admin_client, line_id)
    purl = f"/lines/{line_id}/projects/{project['id']}"

    t1 = await create_task(admin_client, line_id, project["id"], progress=40)
    t2 = await create_task(admin_client, line_id, project["id"], progress=61)
    assert (await get_json(admin_client, purl))["progress"] == 51

    await create_task(admin_client, line_id, project["id"], parent_id=t1["id"], progress=100)
    assert (await get_json(admin_client, purl))["progress"] == 51

    await admin_client.patch(f"/lines/{line_id}/tasks/{t2['id']}", json={"progress": 100})
    assert (await get_json(admin_client, purl))["progress"] == 70

    await admin_client.delete(f"/lines/{line_id}/tasks/{t2['id']}")
    assert (await get_json(admin_client, purl))["progress"] == 40


async def test_manual_progress_is_kept_until_switched_to_auto(admin_client, line_id):
    project = await create_project(admin_client, line_id, is_auto_progress=False, progress=10)
    purl = f"/lines/{line_id}/projects/{project['id']}"

    await create_task(admin_client, line_id, project["id"], progress=90)
    assert (await get_json(admin_client, purl))["progress"] == 10

    resp = await admin_client.patch(purl, json={"is_auto_progress": True})
    assert (await resp.get_json())["data"]["progress"] == 90


async def test_moving_a_task_updates_both_projects(admin_client, line_id):
    a = await create_project(admin_client, line_id, name="A")
    b = await create_project(admin_client, line_id, name="B")
    task = await create_task(admin_client, line_id, a["id"], progress=80)

    resp = await admin_client.patch(
        f"/lines/{line_id}/tasks/{task['id']}", json={"project_id": b["id"]}
    )
    assert resp.status_code == 200
    assert (await get_json(admin_client, f"/lines/{line_id}/projects/{a['id']}"))["progress"] == 0
    assert (await get_json(admin_client, f"/lines/{line_id}/projects/{b['id']}"))["progress"] == 80


# ==========================================
# Task hierarchy
# ==========================================
async def test_subtask_rules(admin_client, line_id):
    project = await create_project(admin_client, line_id)
    other = await create_project(admin_client, line_id, name="Other")
    parent = await create_task(admin_client, line_id, project["id"])
    child = await create_task(admin_client, line_id, project["id"], parent_id=parent["id"])
    loose = await create_task(admin_client, line_id, project["id"])
    url = f"/lines/{line_id}/tasks"

    base = {"title": "X", "start_date": "2024-05-02", "end_date": "2024-05-03"}
    # only one nesting level
    resp = await admin_client.post(url, json={**base, "project_id": project["id"], "parent_id": child["id"]})
    assert resp.status_code == 400
    # parent must be in the same project
    resp = await admin_client.post(url, json={**base, "project_id": other["id"], "parent_id": parent["id"]})
    assert resp.status_code == 400
    # a parent cannot become a subtask
    resp = await admin_client.patch(f"{url}/{parent['id']}", json={"parent_id": loose["id"]})
    assert resp.status_code == 400
    # promoting a subtask back to top level is fine
    resp = await admin_client.patch(f"{url}/{child['id']}", json={"parent_id": None})
    assert resp.status_code == 200
    assert (await resp.get_json())["data"]["parent_id"] is None


async def test_task_project_must_belong_to_line(admin_client, line_id):
    resp = await admin_client.post("/lines", json={"name": "Legal"})
    other_line = (await resp.get_json())["data"]["id"]
    foreign = await create_project(admin_client, other_line)

    resp = await admin_client.post(
        f"/lines/{line_id}/tasks",
        json={"project_id": foreign["id"], "title": "X", "start_date": "2024-05-02", "end_date": "2024-05-03"},
    )
    assert resp.status_code == 400


async def test_task_groups_nest_subtasks_and_filter(admin_client, line_id):
    portal = await create_project(admin_client, line_id, name="Portal Web")
    intranet = await create_project(admin_client, line_id, name="Intranet")
    parent = await create_task(admin_client, line_id, portal["id"], title="Diseño")
    await create_task(admin_client, line_id, portal["id"], title="Mockups", parent_id=parent["id"])
    await create_task(admin_client, line_id, intranet["id"], title="Migración")

    groups = await get_json(admin_client, f"/lines/{line_id}/tasks")
    assert [g["project"]["name"] for g in groups] == ["Portal Web", "Intranet"]
    top = groups[0]["tasks"]
    assert [t["title"] for t in top] == ["Diseño"]
    assert [s["title"] for s in top[0]["subtasks"]] == ["Mockups"]
    assert top[0]["attachments"] == []

    by_project_name = await get_json(admin_client, f"/lines/{line_id}/tasks", query_string={"q": "portal"})
    assert [g["project"]["id"] for g in by_project_name] == [portal["id"]]

    by_title = await get_json(admin_client, f"/lines/{line_id}/tasks", query_string={"q": "MIGRA"})
    assert [g["project"]["id"] for g in by_title] == [intranet["id"]]

    assert await get_json(admin_client, f"/lines/{line_id}/tasks", query_string={"q": "zzz"}) == []

    only = await get_json(admin_client, f"/lines/{line_id}/tasks", query_string={"project_id": intranet["id"]})
    assert len(only) == 1


async def test_deletes_cascade(admin_client, line_id):
    project = await create_project(admin_client, line_id)
    parent = await create_task(admin_client, line_id, project["id"])
    child = await create_task(admin_client, line_id, project["id"], parent_id=parent["id"])
    risk = await admin_client.post(
        f"/lines/{line_id}/risks",
        json={"task_id": parent["id"], "description": "R", "responsible": "Ana", "required_action": "Act"},
    )
    risk_id = (await risk.get_json())["data"]["id"]

    await admin_client.delete(f"/lines/{line_id}/tasks/{parent['id']}")
    assert (await admin_client.get(f"/lines/{line_id}/tasks/{child['id']}")).status_code == 404
    unlinked = await get_json(admin_client, f"/lines/{line_id}/risks/{risk_id}")
    assert unlinked["task_id"] is None

    task = await create_task(admin_client, line_id, project["id"])
    await admin_client.delete(f"/lines/{line_id}/projects/{project['id']}")
    assert (await admin_client.get(f"/lines/{line_id}/tasks/{task['id']}")).status_code == 404


# ==========================================
# Checklist
# ==========================================
async def test_checklist_items(admin_client, line_id):
    project = await create_project(admin_client, line_id)
    task = await create_task(admin_client, line_id, project["id"], checklist=[{"text": "Revisar"}])
    assert task["checklist_progress"] == "0/1"
    url = f"/lines/{line_id}/tasks/{task['id']}/checklist"

    resp = await admin_client.post(url, json={"text": "Aprobar"})
    assert resp.status_code == 201
    items = (await resp.get_json())["data"]["checklist"]
    assert [i["text"] for i in items] == ["Revisar", "Aprobar"]
    assert all(i["id"].startswith("check-") for i in items)

    resp = await admin_client.patch(f"{url}/{items[0]['id']}", json={"completed": True})
    assert (await resp.get_json())["data"]["checklist_progress"] == "1/2"

    assert (await admin_client.post(url, json={"text": "   "})).status_code == 400
    assert (await admin_client.patch(f"{url}/check-missing", json={"completed": True})).status_code == 404

    resp = await admin_client.delete(f"{url}/{items[1]['id']}")
    assert (await resp.get_json())["data"]["checklist_progress"] == "1/1"


# ==========================================
# Attachments
# ==========================================
async def test_attachments_json_multipart_and_download(admin_client, app, line_id):
    project = await create_project(admin_client, line_id)
    task = await create_task(admin_client, line_id, project["id"])
    url = f"/lines/{line_id}/tasks/{task['id']}/attachments"

    resp = await admin_client.post(
        url, json={"name": "acta.txt", "type": "text/plain", "data": base64.b64encode(b"hola").decode()}
    )
    assert resp.status_code == 201
    att = (await resp.get_json())["data"]
    assert att["size"] == 4
    assert "data" not in att

    resp = await admin_client.post(
        url, json={"name": "logo.png", "data": "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()}
    )
    assert (await resp.get_json())["data"]["type"] == "image/png"

    upload = FileStorage(BytesIO(b"informe"), filename="informe.pdf", content_type="application/pdf")
    resp = await admin_client.post(url, files={"file": upload})
    assert resp.status_code == 201

    detail = await get_json(admin_client, f"/lines/{line_id}/tasks/{task['id']}")
    assert [a["name"] for a in detail["attachments"]] == ["acta.txt", "logo.png", "informe.pdf"]

    resp = await admin_client.get(f"{url}/{att['id']}")
    assert resp.status_code == 200
    assert await resp.get_data() == b"hola"
    assert resp.headers["Content-Type"].startswith("text/plain")

    assert (await admin_client.delete(f"{url}/{att['id']}")).status_code == 200
    assert (await admin_client.get(f"{url}/{att['id']}")).status_code == 404


async def test_attachment_limits(admin_client, app, line_id):
    project = await create_project(admin_client, line_id)
    task = await create_task(admin_client, line_id, project["id"])
    url = f"/lines/{line_id}/tasks/{task['id']}/attachments"

    resp = await admin_client.post(url, json={"name": "x.bin", "data": "%%%not-base64"})
    assert resp.status_code == 400

    app.extensions["service_configs"].max_attachment_bytes = 3
    resp = await admin_client.post(url, json={"name": "x.bin", "data": base64.b64encode(b"1234").decode()})
    assert resp.status_code == 400


async def test_empty_reference_ids_are_stored_as_null(admin_client, line_id):
    project = await create_project(admin_client, line_id)
    task = await create_task(admin_client, line_id, project["id"], parent_id="")
    assert task["parent_id"] is None

    resp = await admin_client.patch(f"/lines/{line_id}/tasks/{task['id']}", json={"parent_id": "  "})
    assert (await resp.get_json())["data"]["parent_id"] is None

    resp = await admin_client.post(
        f"/lines/{line_id}/risks",
        json={"task_id": "", "description": "R", "responsible": "Ana", "required_action": "Act"},
    )
    assert resp.status_code == 201
    assert (await resp.get_json())["data"]["task_id"] is None


async def test_timestamps_keep_their_offset_after_reload(admin_client, line_id):
    resp = await admin_client.post("/lines", json={"name": "Legal"})
    created = (await resp.get_json())["data"]
    loaded = (await (await admin_client.get(f"/lines/{created['id']}")).get_json())["data"]
    assert loaded["created_at"] == created["created_at"]
    assert loaded["created_at"].endswith("+00:00")

    resp = await admin_client.put(f"/lines/{line_id}/reviews/2024-05", json={"summary": "ok"})
    saved = (await resp.get_json())["data"]
    fetched = (await (await admin_client.get(f"/lines/{line_id}/reviews/2024-05")).get_json())["data"]
    assert fetched["updated_at"] == saved["updated_at"]
