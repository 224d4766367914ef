from __future__ import annotations

import pytest

from studio.core.security import create_access_token, get_password_hash
from studio.models.user import User
from studio.models.video import Video
from studio.services.settings_service import ACCESS_MODE, set_setting
from studio.services.storage_service import get_storage

PASSWORD = "correct-horse"
PASSWORD_HASH = get_password_hash(PASSWORD)


def _add_user(database, email: str, role: str = "user", is_blocked: bool = False) -> User:
    async def work(db):
        user = User(email=email, full_name=email.split("@")[0], password_hash=PASSWORD_HASH, role=role,
                    is_blocked=is_blocked)
        db.add(user)
        await db.flush()
        return user

    return database.run(work)


def _auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


def _set_mode(database, mode: str) -> None:
    database.run(lambda db: set_setting(db, ACCESS_MODE, mode))


def _add_video(database, title: str, **fields) -> Video:
    fields.setdefault("source_type", "external")
    fields.setdefault("external_url", f"https://cdn.example.com/{title}.mp4")

    async def work(db):
        video = Video(title=title, **fields)
        db.add(video)
        await db.flush()
        return video

    return database.run(work)


@pytest.fixture()
def people(database):
    return {
        "admin": _add_user(database, "admin@studio.io", role="admin"),
        "viewer": _add_user(database, "viewer@studio.io"),
        "blocked": _add_user(database, "blocked@studio.io", is_blocked=True),
    }


# --- auth ----------------------------------------------------------------------


def test_login_returns_tokens(api, people):
    response = api.post("/api/v1/auth/login", json={"email": "viewer@studio.io", "password": PASSWORD})

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "viewer@studio.io"


def test_blocked_user_cannot_log_in(api, people):
    response = api.post("/api/v1/auth/login", json={"email": "blocked@studio.io", "password": PASSWORD})

    assert response.status_code == 403
    assert response.json()["detail"] == "Blocked by administrator"


def test_blocked_user_session_is_refused(api, people):
    response = api.get("/api/v1/auth/me", headers=_auth(people["blocked"]))

    assert response.status_code == 403


def test_wrong_password_is_unauthorized(api, people):
    response = api.post("/api/v1/auth/login", json={"email": "viewer@studio.io", "password": "nope-nope"})

    assert response.status_code == 401


def test_blocking_takes_effect_on_the_next_request(api, people):
    viewer = people["viewer"]
    assert api.get("/api/v1/auth/me", headers=_auth(viewer)).status_code == 200

    response = api.put(f"/api/v1/users/{viewer.id}/block", json={"is_blocked": True}, headers=_auth(people["admin"]))

    assert response.status_code == 200
    assert api.get("/api/v1/auth/me", headers=_auth(viewer)).status_code == 403


def test_admin_cannot_block_themselves(api, people):
    admin = people["admin"]

    response = api.put(f"/api/v1/users/{admin.id}/block", json={"is_blocked": True}, headers=_auth(admin))

    assert response.status_code == 400


def test_signup_open_by_default(api):
    response = api.post(
        "/api/v1/auth/signup",
        json={"full_name": "New Person", "email": "New@Studio.io", "password": "long-enough"},
    )

    assert response.status_code == 201
    assert response.json()["email"] == "new@studio.io"


def test_signup_disabled_in_invite_mode(api, database):
    _set_mode(database, "invite")

    response = api.post(
        "/api/v1/auth/signup",
        json={"full_name": "New Person", "email": "new@studio.io", "password": "long-enough"},
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Signup disabled"
    assert api.get("/api/v1/settings/access-mode").json() == {"access_mode": "invite", "signup_enabled": False}


# --- site access ---------------------------------------------------------------


def test_open_mode_lists_for_anonymous_viewers(api, database):
    _add_video(database, "public")

    response = api.get("/api/v1/videos")

    assert response.status_code == 200
    assert [item["title"] for item in response.json()["items"]] == ["public"]


@pytest.mark.parametrize("mode", ["login", "invite"])
def test_login_and_invite_modes_require_a_session(api, database, people, mode):
    _set_mode(database, mode)

    anonymous = api.get("/api/v1/videos")
    forum = api.get("/api/v1/forum/threads")
    signed_in = api.get("/api/v1/videos", headers=_auth(people["viewer"]))

    assert anonymous.status_code == 401
    assert anonymous.json()["detail"] == "Login required"
    assert forum.status_code == 401
    assert signed_in.status_code == 200


def test_blocked_viewer_cannot_list(api, people):
    assert api.get("/api/v1/videos", headers=_auth(people["blocked"])).status_code == 403


def test_only_admins_change_access_mode(api, people):
    body = {"access_mode": "login"}

    assert api.put("/api/v1/settings/access-mode", json=body, headers=_auth(people["viewer"])).status_code == 403
    response = api.put("/api/v1/settings/access-mode", json=body, headers=_auth(people["admin"]))

    assert response.status_code == 200
    assert api.get("/api/v1/settings/access-mode").json()["access_mode"] == "login"


# --- visibility ----------------------------------------------------------------


def test_private_videos_only_reach_admins(api, database, people):
    _add_video(database, "shown", order_index=0)
    hidden = _add_video(database, "hidden", order_index=1, is_public=False)

    anonymous = api.get("/api/v1/videos", params={"status": "private"}).json()
    admin = api.get("/api/v1/videos", params={"status": "private"}, headers=_auth(people["admin"])).json()

    # The status filter is ignored for non-admins.
    assert [item["title"] for item in anonymous["items"]] == ["shown"]
    assert [item["title"] for item in admin["items"]] == ["hidden"]
    assert api.get(f"/api/v1/videos/{hidden.id}").status_code == 404
    assert api.get(f"/api/v1/videos/{hidden.id}", headers=_auth(people["admin"])).status_code == 200


def test_views_follow_visibility(api, database, people):
    shown = _add_video(database, "shown")
    hidden = _add_video(database, "hidden", is_public=False)

    assert api.post(f"/api/v1/videos/{shown.id}/view").json() == {"view_count": 1}
    assert api.post(f"/api/v1/videos/{hidden.id}/view").status_code == 404
    assert api.post(f"/api/v1/videos/{hidden.id}/view", headers=_auth(people["admin"])).json() == {"view_count": 1}


def test_views_require_a_session_in_login_mode(api, database, people):
    video = _add_video(database, "shown")
    _set_mode(database, "login")

    assert api.post(f"/api/v1/videos/{video.id}/view").status_code == 401
    assert api.post(f"/api/v1/videos/{video.id}/view", headers=_auth(people["viewer"])).json() == {"view_count": 1}


# --- admin library changes -----------------------------------------------------


def test_delete_removes_files_after_the_record(api, database, people):
    storage = get_storage()
    file_path = storage.save("videos", b"\x00", ".mp4")
    thumb_path = storage.save("thumbnails", b"jpeg", ".jpg")
    first = _add_video(
        database, "first", source_type="upload", external_url=None, file_path=file_path,
        thumbnail_path=thumb_path, order_index=0,
    )
    _add_video(database, "second", order_index=1)

    response = api.delete(f"/api/v1/videos/{first.id}", headers=_auth(people["admin"]))

    assert response.status_code == 204
    assert not storage.local_path("videos", file_path).exists()
    assert not storage.local_path("thumbnails", thumb_path).exists()
    items = api.get("/api/v1/videos").json()["items"]
    assert [(item["title"], item["order_index"]) for item in items] == [("second", 0)]


def test_reorder_rejects_duplicate_ids(api, database, people):
    video = _add_video(database, "only")
    body = [{"id": str(video.id), "order_index": 0}, {"id": str(video.id), "order_index": 1}]

    response = api.put("/api/v1/videos/order", json=body, headers=_auth(people["admin"]))

    assert response.status_code == 400


def test_reorder_by_admin(api, database, people):
    a = _add_video(database, "a", order_index=0)
    b = _add_video(database, "b", order_index=1)
    body = [{"id": str(a.id), "order_index": 1}, {"id": str(b.id), "order_index": 0}]

    assert api.put("/api/v1/videos/order", json=body, headers=_auth(people["viewer"])).status_code == 403
    response = api.put("/api/v1/videos/order", json=body, headers=_auth(people["admin"]))

    assert response.json() == {"updated": 2}
    assert [item["title"] for item in api.get("/api/v1/videos").json()["items"]] == ["b", "a"]
