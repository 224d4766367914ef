from __future__ import annotations

import uuid
from datetime import datetime

from studio.core.security import create_access_token
from studio.models.forum import ForumThread
from studio.models.user import User
from studio.schemas.forum import ThreadCreate
from studio.services import forum_service
from studio.services.forum_service import can_modify, thread_to_response


def _user(role="user") -> User:
    return User(id=uuid.uuid4(), email=f"{role}@example.com", full_name=role.title(), role=role)


def _stored_user(database, email: str, role: str = "user") -> User:
    async def work(db):
        user = User(email=email, full_name=email.split("@")[0].title(), password_hash="x", role=role)
        db.add(user)
        await db.flush()
        return user

    return database.run(work)


def _auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, role=user.role)}"}


def _thread(database, author: User, title: str, category: str = "General", replies: int = 0) -> ForumThread:
    async def work(db):
        thread = await forum_service.create_thread(
            db, author, ThreadCreate(title=title, content="<p>hello</p>", category=category)
        )
        for n in range(replies):
            await forum_service.create_post(db, thread, author, f"<p>reply {n}</p>")
        return thread

    return database.run(work)


def test_authors_and_admins_can_modify():
    author = _user()
    other = _user()
    admin = _user("admin")

    assert can_modify(author, author.id)
    assert not can_modify(other, author.id)
    assert can_modify(admin, author.id)
    assert can_modify(admin, None)
    assert not can_modify(author, None)


def test_thread_response_fills_defaults():
    thread = ForumThread(
        id=uuid.uuid4(),
        title="Welcome",
        content="<p>hi</p>",
        created_at=datetime(2025, 1, 1),
    )

    response = thread_to_response(thread, reply_count=3)

    assert response.category == "General"
    assert response.view_count == 0
    assert response.reply_count == 3


def test_threads_carry_reply_counts(database):
    author = _stored_user(database, "writer@studio.io")
    _thread(database, author, "Quiet", replies=0)
    _thread(database, author, "Busy", category="News", replies=2)

    threads = database.run(lambda db: forum_service.list_threads(db))
    counts = {thread.title: thread.reply_count for thread in threads}

    assert counts == {"Quiet": 0, "Busy": 2}
    assert threads[0].author_name == "Writer"


def test_thread_category_and_title_filters(database):
    author = _stored_user(database, "writer@studio.io")
    _thread(database, author, "Camera settings", category="Gear")
    _thread(database, author, "Welcome", category="General")

    gear = database.run(lambda db: forum_service.list_threads(db, category="Gear"))
    everything = database.run(lambda db: forum_service.list_threads(db, category="All"))
    searched = database.run(lambda db: forum_service.list_threads(db, search="camera"))

    assert [t.title for t in gear] == ["Camera settings"]
    assert len(everything) == 2
    assert [t.title for t in searched] == ["Camera settings"]


def test_opening_a_thread_counts_views(api, database):
    author = _stored_user(database, "writer@studio.io")
    thread = _thread(database, author, "Hello", replies=1)

    first = api.get(f"/api/v1/forum/threads/{thread.id}").json()
    second = api.get(f"/api/v1/forum/threads/{thread.id}").json()

    assert first["view_count"] == 1
    assert second["view_count"] == 2
    assert second["reply_count"] == 1


def test_only_author_or_admin_edits_a_thread(api, database):
    author = _stored_user(database, "writer@studio.io")
    other = _stored_user(database, "other@studio.io")
    admin = _stored_user(database, "admin@studio.io", role="admin")
    thread = _thread(database, author, "Hello")
    url = f"/api/v1/forum/threads/{thread.id}"

    assert api.patch(url, json={"title": "Hijacked"}, headers=_auth(other)).status_code == 403
    assert api.patch(url, json={"title": "Edited"}, headers=_auth(author)).json()["title"] == "Edited"
    assert api.delete(url, headers=_auth(admin)).status_code == 204
    assert api.get(url).status_code == 404


def test_empty_reply_is_rejected(api, database):
    author = _stored_user(database, "writer@studio.io")
    thread = _thread(database, author, "Hello")

    response = api.post(f"/api/v1/forum/threads/{thread.id}/posts", json={"content": "<p></p>"}, headers=_auth(author))

    assert response.status_code == 422
