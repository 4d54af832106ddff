"""
Tests for the project endpoints.
"""
import pytest

pytestmark = pytest.mark.asyncio

TEST_PROJECT_ID = "test-project-id"
OTHER_PROJECT_ID = "other-project-id"


async def test_create_project(async_client, override_auth):
    response = await async_client.post("/api/v1/projects", json={"name": "  Savings  "})

    assert response.status_code == 201
    project = response.json()
    assert project["name"] == "Savings"
    assert project["user_id"] == "test-user-id"
    assert project["id"].startswith("project-")


async def test_duplicate_project_name_is_rejected(async_client, override_auth):
    response = await async_client.post("/api/v1/projects", json={"name": "Household"})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "PROJECT_NAME_TAKEN"
    assert body["message"] == "Project name already taken"


async def test_blank_project_name_is_invalid(async_client, override_auth):
    response = await async_client.post("/api/v1/projects", json={"name": "   "})

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_list_projects_only_returns_own(async_client, override_auth):
    await async_client.post("/api/v1/projects", json={"name": "Travel"})

    response = await async_client.get("/api/v1/projects")
    assert response.status_code == 200
    page = response.json()
    assert page["page_info"]["total_items"] == 2
    assert {p["name"] for p in page["items"]} == {"Household", "Travel"}

    response = await async_client.get("/api/v1/projects", params={"name": "trav"})
    assert [p["name"] for p in response.json()["items"]] == ["Travel"]


async def test_get_project(async_client, override_auth):
    response = await async_client.get(f"/api/v1/projects/{TEST_PROJECT_ID}")

    assert response.status_code == 200
    assert response.json()["name"] == "Household"


async def test_other_users_project_is_forbidden(async_client, override_auth):
    response = await async_client.get(f"/api/v1/projects/{OTHER_PROJECT_ID}")

    assert response.status_code == 403
    assert response.json()["code"] == "AUTHORIZATION_ERROR"


async def test_missing_project_is_not_found(async_client, override_auth):
    response = await async_client.get("/api/v1/projects/project-missing")

    assert response.status_code == 404
    assert response.json()["message"] == "Project not found"


async def test_rename_project(async_client, override_auth):
    response = await async_client.put(
        f"/api/v1/projects/{TEST_PROJECT_ID}", json={"name": "Home"}
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Home"


async def test_rename_to_taken_name_is_rejected(async_client, override_auth):
    await async_client.post("/api/v1/projects", json={"name": "Travel"})

    response = await async_client.put(
        f"/api/v1/projects/{TEST_PROJECT_ID}", json={"name": "Travel"}
    )

    assert response.status_code == 400
    assert response.json()["code"] == "PROJECT_NAME_TAKEN"


async def test_delete_project(async_client, override_auth):
    response = await async_client.delete(f"/api/v1/projects/{TEST_PROJECT_ID}")
    assert response.status_code == 204

    response = await async_client.get(f"/api/v1/projects/{TEST_PROJECT_ID}")
    assert response.status_code == 404


async def test_list_project_jobs_filters_by_status(async_client, override_auth, services):
    pending = await services.job_store.create_job(TEST_PROJECT_ID, "a.csv")
    failed = await services.job_store.create_job(TEST_PROJECT_ID, "b.csv")
    await services.job_store.transition(failed.id, "failed")

    response = await async_client.get(f"/api/v1/projects/{TEST_PROJECT_ID}/jobs")
    assert response.status_code == 200
    assert response.json()["page_info"]["total_items"] == 2

    response = await async_client.get(
        f"/api/v1/projects/{TEST_PROJECT_ID}/jobs", params={"status": "pending"}
    )
    jobs = response.json()["items"]
    assert [job["id"] for job in jobs] == [pending.id]
    assert jobs[0]["status"] == "pending"
    assert jobs[0]["completedAt"] is None
