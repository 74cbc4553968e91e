from bson import ObjectId

from conftest import bearer

ADMIN = bearer("admin-token")


def test_profile_missing_until_created(client) -> None:
    response = client.get("/api/profile", headers=bearer())

    assert response.status_code == 404
    assert response.json()["detail"] == "Profile not found"


def test_profile_upsert_applies_defaults_and_identity(client) -> None:
    response = client.put(
        "/api/profile",
        json={"firstName": "Ada", "theme": "dark", "userId": "someone-else"},
        headers=bearer(),
    )

    assert response.status_code == 200
    profile = response.json()
    assert profile["userId"] == "user-learner"
    assert profile["email"] == "learner@example.com"
    assert profile["firstName"] == "Ada"
    assert profile["theme"] == "dark"
    assert profile["language"] == "en-US"
    assert profile["subscriptionTier"] == "free"
    assert profile["emailNotifications"]["weeklyDigest"] is False

    fetched = client.get("/api/profile", headers=bearer()).json()
    assert fetched["_id"] == profile["_id"]


def test_profile_update_keeps_earlier_fields(client) -> None:
    client.put("/api/profile", json={"firstName": "Ada"}, headers=bearer())

    profile = client.put("/api/profile", json={"lastName": "Lovelace"}, headers=bearer()).json()

    assert profile["firstName"] == "Ada"
    assert profile["lastName"] == "Lovelace"


def test_profile_rejects_null_for_defaulted_fields(client) -> None:
    client.put("/api/profile", json={"bio": "Builds queues", "theme": "dark"}, headers=bearer())

    null_theme = client.put("/api/profile", json={"theme": None}, headers=bearer())
    null_language = client.put("/api/profile", json={"language": None}, headers=bearer())
    cleared_bio = client.put("/api/profile", json={"bio": None}, headers=bearer())
    fetched = client.get("/api/profile", headers=bearer())

    assert null_theme.status_code == 400
    assert null_language.status_code == 400
    assert cleared_bio.status_code == 200
    assert cleared_bio.json()["bio"] is None
    assert fetched.status_code == 200
    assert fetched.json()["theme"] == "dark"
    assert fetched.json()["language"] == "en-US"


def test_profile_cannot_change_subscription_tier(client) -> None:
    profile = client.put("/api/profile", json={"subscriptionTier": "enterprise"}, headers=bearer()).json()

    assert profile["subscriptionTier"] == "free"


def test_admin_lists_and_searches_users(client) -> None:
    client.put("/api/profile", json={"username": "ada"}, headers=bearer())
    client.put("/api/profile", json={"username": "grace"}, headers=bearer("other-token"))

    everyone = client.get("/api/admin/users", headers=ADMIN).json()
    search = client.get("/api/admin/users?search=GRA", headers=ADMIN).json()
    by_email = client.get("/api/admin/users?search=learner@", headers=ADMIN).json()

    assert everyone["pagination"]["total"] == 2
    assert [user["username"] for user in search["items"]] == ["grace"]
    assert [user["username"] for user in by_email["items"]] == ["ada"]


def test_subscription_update_and_tier_filter(client) -> None:
    profile = client.put("/api/profile", json={}, headers=bearer()).json()

    response = client.put(
        f"/api/admin/users/{profile['_id']}/subscription",
        json={"subscriptionTier": "pro"},
        headers=ADMIN,
    )
    pro_users = client.get("/api/admin/users?tier=pro", headers=ADMIN).json()

    assert response.status_code == 200
    assert response.json()["subscriptionTier"] == "pro"
    assert [user["_id"] for user in pro_users["items"]] == [profile["_id"]]


def test_invalid_subscription_tier(client) -> None:
    profile = client.put("/api/profile", json={}, headers=bearer()).json()
    url = f"/api/admin/users/{profile['_id']}/subscription"

    bad_tier = client.put(url, json={"subscriptionTier": "platinum"}, headers=ADMIN)
    no_tier = client.put(url, json={}, headers=ADMIN)

    assert bad_tier.status_code == 400
    assert bad_tier.json()["detail"] == "Invalid subscription tier"
    assert no_tier.status_code == 400


def test_admin_get_and_delete_user(client) -> None:
    profile = client.put("/api/profile", json={}, headers=bearer()).json()

    fetched = client.get(f"/api/admin/users/{profile['_id']}", headers=ADMIN)
    deleted = client.delete(f"/api/admin/users/{profile['_id']}", headers=ADMIN)
    missing = client.get(f"/api/admin/users/{profile['_id']}", headers=ADMIN)

    assert fetched.json()["userId"] == "user-learner"
    assert deleted.json() == {"message": "User deleted successfully"}
    assert missing.status_code == 404
    assert missing.json()["detail"] == "User not found"


def test_unknown_user_subscription_update(client) -> None:
    response = client.put(
        f"/api/admin/users/{ObjectId()}/subscription",
        json={"subscriptionTier": "pro"},
        headers=ADMIN,
    )

    assert response.status_code == 404
