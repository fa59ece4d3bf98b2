from conftest import FakeLLM, create_project, create_task

REPLY = {
    "summary": "Mes estable.",
    "achievements": "Diseño cerrado.",
    "issues": "Ninguno relevante.",
    "nextSteps": "Iniciar desarrollo.",
}


async def test_review_crud(admin_client, line_id):
    url = f"/lines/{line_id}/reviews"
    assert (await admin_client.get(f"{url}/2024-05")).status_code == 404

    resp = await admin_client.put(f"{url}/2024-05", json={"summary": "Mayo", "issues": "QA"})
    assert resp.status_code == 200
    first = (await resp.get_json())["data"]
    assert first["month"] == "2024-05"
    assert first["achievements"] == ""

    resp = await admin_client.put(f"{url}/2024-05", json={"summary": "Mayo v2"})
    second = (await resp.get_json())["data"]
    # upsert keeps one review per month
    assert second["id"] == first["id"]
    assert second["summary"] == "Mayo v2"

    await admin_client.put(f"{url}/2024-06", json={"summary": "Junio"})
    await admin_client.put(f"{url}/2023-12", json={"summary": "Diciembre"})
    months = [r["month"] for r in (await (await admin_client.get(url)).get_json())["data"]]
    assert months == ["2024-06", "2024-05", "2023-12"]

    assert (await admin_client.delete(f"{url}/2024-06")).status_code == 200
    assert (await admin_client.delete(f"{url}/2024-06")).status_code == 404


async def test_month_format_is_checked(admin_client, line_id):
    for month in ("2024-13", "2024-5", "mayo"):
        resp = await admin_client.put(f"/lines/{line_id}/reviews/{month}", json={})
        assert resp.status_code == 400, month


async def test_generate_without_key_returns_simulated_draft(admin_client, line_id):
    url = f"/lines/{line_id}/reviews/2024-05/generate"
    data = (await (await admin_client.post(url)).get_json())["data"]
    assert data["source"] == "mock"
    assert data["saved"] is False
    assert data["draft"]["summary"].startswith("Resumen simulado")
    assert (await admin_client.get(f"/lines/{line_id}/reviews/2024-05")).status_code == 404


async def test_generate_and_save_with_model(admin_client, app, line_id):
    llm = FakeLLM(reply=REPLY)
    app.extensions["llm"] = llm
    project = await create_project(admin_client, line_id)
    await create_task(admin_client, line_id, project["id"], title="Diseño", status="Completed")

    url = f"/lines/{line_id}/reviews/2024-05/generate"
    resp = await admin_client.post(url, query_string={"save": "true"})
    data = (await resp.get_json())["data"]

    assert data["source"] == "ai"
    assert data["saved"] is True
    assert data["draft"]["next_steps"] == "Iniciar desarrollo."
    assert "Tareas Completadas: Diseño" in llm.calls[0][1]["content"]

    saved = (await (await admin_client.get(f"/lines/{line_id}/reviews/2024-05")).get_json())["data"]
    assert saved["summary"] == "Mes estable."
    assert saved["next_steps"] == "Iniciar desarrollo."


async def test_generate_failure_returns_error_draft(admin_client, app, line_id):
    app.extensions["llm"] = FakeLLM(error=ConnectionError("down"))
    resp = await admin_client.post(f"/lines/{line_id}/reviews/2024-05/generate")
    assert resp.status_code == 200
    data = (await resp.get_json())["data"]
    assert data["source"] == "error"
    assert data["draft"]["issues"] == "Verifique su conexión o clave API."


async def test_global_review(admin_client, app):
    url = "/global/reviews/2024-05"
    assert (await admin_client.get(url)).status_code == 404

    resp = await admin_client.put(url, json={"vision": "Crecer", "strategy": "1. Foco"})
    data = (await resp.get_json())["data"]
    assert data["vision"] == "Crecer"
    assert data["last_updated"]

    app.extensions["llm"] = FakeLLM(
        reply={"vision": "V", "milestones": "• M", "attentionAreas": "• A", "strategy": "1. S"}
    )
    resp = await admin_client.post(f"{url}/generate")
    data = (await resp.get_json())["data"]
    assert data["source"] == "ai"
    # generation stores the draft right away
    saved = (await (await admin_client.get(url)).get_json())["data"]
    assert saved["attention_areas"] == "• A"
    assert saved["vision"] == "V"


async def test_global_generate_without_key(admin_client):
    resp = await admin_client.post("/global/reviews/2024-05/generate")
    data = (await resp.get_json())["data"]
    assert data["source"] == "mock"
    assert data["review"]["vision"].startswith("Resumen simulado")
