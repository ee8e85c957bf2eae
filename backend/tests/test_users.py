from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from scholarship_api.main import app
from scholarship_api.providers import ProviderError

client = TestClient(app)


def test_create_user_forces_student_role(store):
    r = client.post("/users", json={"name": "Ada", "email": "ada@example.com", "photoURL": "http://x/a.png", "role": "admin"})
    assert r.status_code == 200
    body = r.json()
    assert body["acknowledged"] is True
    stored = store["users"].find_one({"_id": ObjectId(body["insertedId"])})
    assert stored["role"] == "student"
    assert stored["name"] == "Ada"
    assert stored["createdAt"] is not None


def test_create_user_keeps_client_timestamp():
    client.post("/users", json={"email": "old@example.com", "createdAt": "2024-01-01T00:00:00Z"})
    users = client.get("/users").json()
    assert users[0]["email"] == "old@example.com"
    assert users[0]["createdAt"].startswith("2024-01-01T00:00:00")


def test_create_user_requires_email():
    r = client.post("/users", json={"name": "Nobody"})
    assert r.status_code == 400
    assert r.json()["errors"][0]["loc"][-1] == "email"


def test_list_users_newest_first():
    for email, ts in [("a@example.com", "2024-03-01T00:00:00Z"), ("b@example.com", "2024-05-01T00:00:00Z"),
                      ("c@example.com", "2024-04-01T00:00:00Z")]:
        client.post("/users", json={"email": email, "createdAt": ts})
    r = client.get("/users")
    assert r.status_code == 200
    assert [u["email"] for u in r.json()] == ["b@example.com", "c@example.com", "a@example.com"]
    assert all(isinstance(u["_id"], str) for u in r.json())


def test_update_role(store, make_user):
    user_id = make_user("stu@example.com")
    r = client.patch(f"/users/{user_id}/role", json={"role": "moderator"})
    assert r.status_code == 200
    assert r.json()["modifiedCount"] == 1
    assert store["users"].find_one({"_id": ObjectId(user_id)})["role"] == "moderator"


def test_update_role_rejects_unknown_role(store, make_user):
    user_id = make_user("stu@example.com")
    r = client.patch(f"/users/{user_id}/role", json={"role": "superuser"})
    assert r.status_code == 400
    assert store["users"].find_one({"_id": ObjectId(user_id)})["role"] == "student"


def test_update_role_rejects_bad_id():
    r = client.patch("/users/not-an-id/role", json={"role": "admin"})
    assert r.status_code == 400
    assert r.json() == {"message": "Invalid id"}


def test_delete_user_requires_token(make_user):
    user_id = make_user("stu@example.com")
    assert client.delete(f"/users/{user_id}").status_code == 401


def test_delete_user_requires_admin(store, make_user, auth_headers):
    make_user("mod@example.com", "moderator")
    user_id = make_user("stu@example.com")
    r = client.delete(f"/users/{user_id}", headers=auth_headers("mod@example.com"))
    assert r.status_code == 403
    assert store["users"].count_documents({"_id": ObjectId(user_id)}) == 1


def test_admin_deletes_user_and_identity(store, make_user, auth_headers, identities):
    make_user("admin@example.com", "admin")
    user_id = make_user("stu@example.com")
    r = client.delete(f"/users/{user_id}", headers=auth_headers("admin@example.com"))
    assert r.status_code == 200
    assert r.json()["deletedCount"] == 1
    assert identities.deleted == ["stu@example.com"]
    assert store["users"].count_documents({"_id": ObjectId(user_id)}) == 0


def test_delete_user_without_identity_record_still_succeeds(store, make_user, auth_headers, identities):
    make_user("admin@example.com", "admin")
    user_id = make_user("stu@example.com")
    identities.missing.add("stu@example.com")
    r = client.delete(f"/users/{user_id}", headers=auth_headers("admin@example.com"))
    assert r.status_code == 200
    assert store["users"].count_documents({"_id": ObjectId(user_id)}) == 0


def test_identity_failure_keeps_user(store, make_user, auth_headers, identities):
    make_user("admin@example.com", "admin")
    user_id = make_user("stu@example.com")
    identities.fail_with = ProviderError("firebase: quota exceeded")
    r = client.delete(f"/users/{user_id}", headers=auth_headers("admin@example.com"))
    assert r.status_code == 500
    assert r.json() == {"message": "Failed to delete user."}
    stored = store["users"].find_one({"_id": ObjectId(user_id)})
    assert stored is not None
    assert "deletionPending" not in stored


def test_store_failure_after_identity_deletion_leaves_marker(store, make_user, auth_headers, monkeypatch):
    make_user("admin@example.com", "admin")
    user_id = make_user("stu@example.com")

    def broken_delete(self, oid):
        raise PyMongoError("connection reset")

    monkeypatch.setattr("scholarship_api.repositories.UserRepository.delete", broken_delete)
    r = client.delete(f"/users/{user_id}", headers=auth_headers("admin@example.com"))
    assert r.status_code == 500
    assert store["users"].find_one({"_id": ObjectId(user_id)})["deletionPending"] is True


def test_delete_unknown_user_is_404(make_user, auth_headers):
    make_user("admin@example.com", "admin")
    r = client.delete(f"/users/{ObjectId()}", headers=auth_headers("admin@example.com"))
    assert r.status_code == 404
    assert r.json() == {"message": "User not found"}


def test_delete_user_bad_id_is_400(make_user, auth_headers):
    make_user("admin@example.com", "admin")
    r = client.delete("/users/12345", headers=auth_headers("admin@example.com"))
    assert r.status_code == 400


def test_delete_user_bad_id_skips_user_store_calls(make_user, auth_headers, identities, monkeypatch):
    make_user("admin@example.com", "admin")

    def fail(*_args, **_kwargs):
        raise AssertionError("store called")

    monkeypatch.setattr("scholarship_api.repositories.DocumentRepository.get", fail)
    monkeypatch.setattr("scholarship_api.repositories.DocumentRepository.delete", fail)
    r = client.delete("/users/not-an-object-id", headers=auth_headers("admin@example.com"))
    assert r.status_code == 400
    assert identities.deleted == []
