import asyncio

from bson import ObjectId

from conftest import bearer, create_pod, create_problem, create_stage

ADMIN = bearer("admin-token")


def count(collection, query: dict = None) -> int:
    return asyncio.run(collection.count_documents(query or {}))


# ==================== PROBLEMS ====================

def test_create_problem_uses_camel_case_wire_format(client) -> None:
    problem = create_problem(client, skills=[{"skillId": "caching", "weight": 2}])

    assert problem["slug"] == "url-shortener"
    assert problem["estimatedHours"] == 6
    assert problem["isPublic"] is True
    assert problem["version"] == 1
    assert problem["pods"] == []
    assert problem["skills"] == [{"skillId": "caching", "weight": 2}]
    assert ObjectId.is_valid(problem["_id"])


def test_create_problem_validation_is_bad_request(client) -> None:
    response = client.post(
        "/api/admin/problems",
        json={"slug": "x", "title": "X", "difficulty": "impossible", "estimatedHours": 1},
        headers=ADMIN,
    )

    assert response.status_code == 400


def test_duplicate_slug_is_conflict(client, db) -> None:
    asyncio.run(db.problems.create_index("slug", unique=True))
    create_problem(client, slug="dup")

    response = client.post(
        "/api/admin/problems",
        json={"slug": "dup", "title": "Again", "difficulty": "beginner", "estimatedHours": 1},
        headers=ADMIN,
    )

    assert response.status_code == 409


def test_list_problems_paginates_newest_first(client) -> None:
    for index in range(12):
        create_problem(client, slug=f"problem-{index}", isPublic=index % 2 == 0)

    first_page = client.get("/api/admin/problems", headers=ADMIN).json()
    second_page = client.get("/api/admin/problems?page=2&limit=10", headers=ADMIN).json()

    assert len(first_page["items"]) == 10
    assert first_page["pagination"] == {"page": 1, "limit": 10, "total": 12, "totalPages": 2}
    assert len(second_page["items"]) == 2
    assert first_page["items"][0]["slug"] == "problem-11"


def test_list_problems_filters(client) -> None:
    create_problem(client, slug="easy-public", difficulty="beginner", isPublic=True)
    create_problem(client, slug="hard-private", difficulty="advanced", isPublic=False)

    public = client.get("/api/admin/problems?isPublic=true", headers=ADMIN).json()
    advanced = client.get("/api/admin/problems?difficulty=advanced", headers=ADMIN).json()

    assert [item["slug"] for item in public["items"]] == ["easy-public"]
    assert [item["slug"] for item in advanced["items"]] == ["hard-private"]


def test_update_problem(client) -> None:
    problem = create_problem(client)

    response = client.put(
        f"/api/admin/problems/{problem['_id']}",
        json={"title": "Design a paste bin", "isPublic": False},
        headers=ADMIN,
    )

    assert response.status_code == 200
    assert response.json()["title"] == "Design a paste bin"
    assert response.json()["isPublic"] is False
    assert response.json()["slug"] == problem["slug"]


def test_update_problem_rejects_null_required_fields(client) -> None:
    problem = create_problem(client, tagline="Short links")
    url = f"/api/admin/problems/{problem['_id']}"

    for field in ("title", "difficulty", "estimatedHours", "isPublic"):
        response = client.put(url, json={field: None}, headers=ADMIN)
        assert response.status_code == 400, field

    cleared = client.put(url, json={"tagline": None}, headers=ADMIN)
    listed = client.get("/api/admin/problems", headers=ADMIN)

    assert cleared.status_code == 200
    assert cleared.json()["tagline"] is None
    assert cleared.json()["title"] == problem["title"]
    assert listed.status_code == 200
    assert listed.json()["items"][0]["difficulty"] == "intermediate"


def test_update_and_delete_unknown_problem(client) -> None:
    missing = str(ObjectId())

    assert client.put(f"/api/admin/problems/{missing}", json={"title": "x"}, headers=ADMIN).status_code == 404
    assert client.delete(f"/api/admin/problems/{missing}", headers=ADMIN).status_code == 404
    assert client.delete("/api/admin/problems/zzz", headers=ADMIN).status_code == 400


def test_delete_problem_removes_pods_but_keeps_stages(client, db) -> None:
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"])
    create_stage(client, pod["_id"])

    response = client.delete(f"/api/admin/problems/{problem['_id']}", headers=ADMIN)

    assert response.status_code == 200
    assert response.json() == {"message": "Problem deleted successfully"}
    assert count(db.problems) == 0
    assert count(db.pods) == 0
    assert count(db.pod_stages) == 1


def test_delete_problem_cascades_stages_when_enabled(make_client, db) -> None:
    client = make_client(CASCADE_STAGES_ON_PROBLEM_DELETE="true")
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"])
    create_stage(client, pod["_id"])

    client.delete(f"/api/admin/problems/{problem['_id']}", headers=ADMIN)

    assert count(db.pods) == 0
    assert count(db.pod_stages) == 0


# ==================== PODS ====================

def test_create_pod_registers_reference_on_problem(client, db) -> None:
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"], order=3)

    stored = asyncio.run(db.problems.find_one({"_id": ObjectId(problem["_id"])}))
    assert stored["pods"] == [{"pod_id": ObjectId(pod["_id"]), "order": 3, "weight": 1}]
    assert pod["problem"] == problem["_id"]
    assert pod["mode"] == "multi_stage"
    assert pod["estimatedMinutes"] == 60


def test_create_pod_for_unknown_problem(client, db) -> None:
    response = client.post(
        "/api/admin/pods",
        json={"problem": str(ObjectId()), "title": "Orphan", "phase": "design"},
        headers=ADMIN,
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Problem not found"
    assert count(db.pods) == 0


def test_delete_pod_cascades_stages_and_reference(client, db) -> None:
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"])
    kept_pod = create_pod(client, problem["_id"], order=2)
    create_stage(client, pod["_id"], order=1)
    create_stage(client, pod["_id"], order=2)
    create_stage(client, kept_pod["_id"], order=1)

    response = client.delete(f"/api/admin/pods/{pod['_id']}", headers=ADMIN)

    assert response.json() == {"message": "Pod deleted successfully"}
    assert count(db.pod_stages, {"pod_id": ObjectId(pod["_id"])}) == 0
    assert count(db.pod_stages) == 1
    stored = asyncio.run(db.problems.find_one({"_id": ObjectId(problem["_id"])}))
    assert [ref["pod_id"] for ref in stored["pods"]] == [ObjectId(kept_pod["_id"])]


def test_list_pods_filters_and_annotates_problem(client) -> None:
    problem = create_problem(client)
    create_pod(client, problem["_id"], order=1, title="Research the domain", phase="research")
    create_pod(client, problem["_id"], order=2, title="Design the API", phase="design")

    by_phase = client.get("/api/admin/pods?phase=design", headers=ADMIN).json()
    by_search = client.get("/api/admin/pods?search=RESEARCH", headers=ADMIN).json()
    by_problem = client.get(f"/api/admin/pods?problemId={problem['_id']}", headers=ADMIN).json()

    assert [pod["title"] for pod in by_phase["items"]] == ["Design the API"]
    assert [pod["title"] for pod in by_search["items"]] == ["Research the domain"]
    assert by_problem["pagination"]["total"] == 2
    assert by_problem["items"][0]["problemSlug"] == "url-shortener"


def test_update_pod_keeps_problem_reference_order(client, db) -> None:
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"], order=1)

    response = client.put(f"/api/admin/pods/{pod['_id']}", json={"order": 5}, headers=ADMIN)

    assert response.status_code == 200
    assert response.json()["order"] == 5
    stored = asyncio.run(db.problems.find_one({"_id": ObjectId(problem["_id"])}))
    assert stored["pods"][0]["order"] == 5


def test_update_pod_rejects_null_order(client, db) -> None:
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"], order=1, content_file_path="content/pods/p1.md")
    url = f"/api/admin/pods/{pod['_id']}"

    null_order = client.put(url, json={"order": None}, headers=ADMIN)
    null_phase = client.put(url, json={"phase": None}, headers=ADMIN)
    cleared = client.put(url, json={"content_file_path": None}, headers=ADMIN)

    assert null_order.status_code == 400
    assert null_phase.status_code == 400
    assert cleared.status_code == 200
    assert cleared.json()["content_file_path"] is None
    assert cleared.json()["order"] == 1
    stored = asyncio.run(db.problems.find_one({"_id": ObjectId(problem["_id"])}))
    assert stored["pods"][0]["order"] == 1


# ==================== STAGES ====================

def test_create_stage_for_unknown_pod(client) -> None:
    response = client.post(
        "/api/admin/stages",
        json={"pod": str(ObjectId()), "title": "Intro", "type": "introduction"},
        headers=ADMIN,
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Pod not found"


def test_list_stages_by_pod_in_order(client) -> None:
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"])
    other_pod = create_pod(client, problem["_id"], order=2)
    create_stage(client, pod["_id"], order=2, title="Second")
    create_stage(client, pod["_id"], order=1, title="First", type="introduction")
    create_stage(client, other_pod["_id"], order=1)

    body = client.get(f"/api/admin/stages?podId={pod['_id']}", headers=ADMIN).json()
    intro = client.get("/api/admin/stages?type=introduction", headers=ADMIN).json()

    assert [stage["title"] for stage in body["items"]] == ["First", "Second"]
    assert body["items"][0]["podTitle"] == "Pod 1"
    assert [stage["title"] for stage in intro["items"]] == ["First"]


def test_update_and_delete_stage(client, db) -> None:
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"])
    stage = create_stage(client, pod["_id"])

    updated = client.put(
        f"/api/admin/stages/{stage['_id']}",
        json={"title": "Renamed", "estimatedMinutes": 45},
        headers=ADMIN,
    )
    deleted = client.delete(f"/api/admin/stages/{stage['_id']}", headers=ADMIN)
    deleted_again = client.delete(f"/api/admin/stages/{stage['_id']}", headers=ADMIN)

    assert updated.json()["title"] == "Renamed"
    assert updated.json()["estimatedMinutes"] == 45
    assert deleted.json() == {"message": "Stage deleted successfully"}
    assert deleted_again.status_code == 404
    assert count(db.pod_stages) == 0


def test_update_stage_rejects_null_required_fields(client) -> None:
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"])
    stage = create_stage(client, pod["_id"], stageKey="intro")
    url = f"/api/admin/stages/{stage['_id']}"

    for field in ("title", "order", "type", "content", "isRequired"):
        response = client.put(url, json={field: None}, headers=ADMIN)
        assert response.status_code == 400, field

    cleared = client.put(url, json={"stageKey": None}, headers=ADMIN)
    listed = client.get(f"/api/admin/stages?podId={pod['_id']}", headers=ADMIN)

    assert cleared.status_code == 200
    assert cleared.json()["stageKey"] is None
    assert listed.json()["items"][0]["title"] == stage["title"]


# ==================== ADMIN GATE ====================

def test_admin_routes_open_to_all_users_without_allowlist(client) -> None:
    response = client.get("/api/admin/problems", headers=bearer("learner-token"))

    assert response.status_code == 200


def test_admin_allowlist_rejects_other_users(make_client) -> None:
    client = make_client(ADMIN_EMAILS="Admin@Example.com, ops@example.com")

    denied = client.get("/api/admin/problems", headers=bearer("learner-token"))
    allowed = client.get("/api/admin/problems", headers=ADMIN)

    assert denied.status_code == 403
    assert denied.json()["detail"] == "Access denied"
    assert allowed.status_code == 200


def test_admin_routes_require_authentication(client) -> None:
    response = client.get("/api/admin/pods")

    assert response.status_code == 401
