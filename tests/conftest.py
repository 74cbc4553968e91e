"""
Shared fixtures: in-memory Mongo, fixed-token identity provider, app client
"""

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from podadmin.auth.identity import AuthenticationError, Identity, IdentityProvider
from podadmin.config import Settings
from podadmin.content.content_store import ContentFileStore
from podadmin.main import create_app

LEARNER = Identity(user_id="user-learner", email="learner@example.com")
OTHER_LEARNER = Identity(user_id="user-other", email="other@example.com")
ADMIN = Identity(user_id="user-admin", email="admin@example.com")

TOKENS = {
    "learner-token": LEARNER,
    "other-token": OTHER_LEARNER,
    "admin-token": ADMIN,
}


class StaticIdentityProvider(IdentityProvider):
    def __init__(self, tokens: dict):
        self.tokens = tokens

    async def resolve(self, token: str) -> Identity:
        if token not in self.tokens:
            raise AuthenticationError("unknown token")
        return self.tokens[token]


def bearer(token: str = "learner-token") -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db():
    return AsyncMongoMockClient()["podadmin_test"]


@pytest.fixture
def content_root(tmp_path):
    return tmp_path


@pytest.fixture
def make_client(db, content_root):
    def _make(**env) -> TestClient:
        settings = Settings({
            "CONTENT_ROOT": str(content_root),
            "CREATE_INDEXES": "false",
            "AUTH_PROVIDER": "jwt",
            **env,
        })
        app = create_app(
            settings=settings,
            database=db,
            identity_provider=StaticIdentityProvider(TOKENS),
            content_store=ContentFileStore(content_root),
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


# ==================== SEED HELPERS ====================

def create_problem(client: TestClient, slug: str = "url-shortener", **overrides) -> dict:
    payload = {
        "slug": slug,
        "title": "Design a URL shortener",
        "difficulty": "intermediate",
        "estimatedHours": 6,
        "isPublic": True,
        **overrides,
    }
    response = client.post("/api/admin/problems", json=payload, headers=bearer("admin-token"))
    assert response.status_code == 201, response.text
    return response.json()


def create_pod(client: TestClient, problem_id: str, order: int = 1, **overrides) -> dict:
    payload = {
        "problem": problem_id,
        "title": f"Pod {order}",
        "phase": "research",
        "order": order,
        **overrides,
    }
    response = client.post("/api/admin/pods", json=payload, headers=bearer("admin-token"))
    assert response.status_code == 201, response.text
    return response.json()


STAGE_CONTENT = {
    "practice_problems": [
        {"id": "p1", "title": "Hashing", "solution": "Hash Map"},
        {"id": "p2", "title": "Open ended"},
    ],
    "mcqs": [
        {
            "id": "q1",
            "question": "Which store fits key lookups?",
            "explanation": "Key-value stores give O(1) lookups",
            "options": [
                {"id": "a", "text": "Key-value store", "is_correct": True},
                {"id": "b", "text": "Tape archive", "is_correct": False},
            ],
        }
    ],
    "assessment_questions": [
        {
            "id": "q2",
            "question": "Pick the cache policy",
            "explanation": "LRU evicts the least recently used entry",
            "options": [
                {"id": "x", "text": "LRU", "is_correct": True},
                {"id": "y", "text": "Random", "is_correct": False},
            ],
        }
    ],
}


def create_stage(client: TestClient, pod_id: str, order: int = 1, **overrides) -> dict:
    payload = {
        "pod": pod_id,
        "title": f"Stage {order}",
        "order": order,
        "type": "practice",
        "content": STAGE_CONTENT,
        **overrides,
    }
    response = client.post("/api/admin/stages", json=payload, headers=bearer("admin-token"))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def hierarchy(client) -> dict:
    """One public problem with one pod holding two stages"""
    problem = create_problem(client)
    pod = create_pod(client, problem["_id"])
    stage = create_stage(client, pod["_id"], order=1)
    second_stage = create_stage(client, pod["_id"], order=2, type="assessment")
    return {"problem": problem, "pod": pod, "stage": stage, "second_stage": second_stage}
