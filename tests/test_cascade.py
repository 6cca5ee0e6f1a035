import os
import sqlite3

import pytest

from blob_store import BlobStoreError, LocalBlobStore, get_blob_store
from cascade import delete_post_cascade
from conftest import count_rows
from database import Database
from errors import BlobDeletionFailed, Forbidden, NotFound
from schemas import CurrentUser


class FailingBlobStore(LocalBlobStore):
    def __init__(self, upload_folder):
        super().__init__(upload_folder)
        self.delete_calls = 0

    def delete(self, url):
        self.delete_calls += 1
        raise BlobStoreError("storage unavailable")


def upload(client, account, name="pic.png", data=b"image-bytes"):
    resp = client.post("/api/upload-image", files={"image": (name, data, "image/png")}, headers=account.headers)
    assert resp.status_code == 200, resp.text
    return resp.json()["imageUrl"]


def build_thread(client, author, commenter, post_id, comments=2, replies_per_comment=2):
    for i in range(comments):
        c = client.post(f"/api/posts/{post_id}/comments", json={"content": f"c{i}"}, headers=commenter.headers).json()
        for j in range(replies_per_comment):
            client.post(f"/api/comments/{c['id']}/replies", json={"content": f"r{i}{j}"}, headers=author.headers)


def as_caller(account, role="user") -> CurrentUser:
    return CurrentUser(id=account.id, username=account.username, email=f"{account.username}@example.com", role=role)


def test_cascade_removes_post_comments_replies_and_image(client, app, db, alice, bob, make_post):
    image_url = upload(client, alice)
    post = make_post(alice, imageUrl=image_url)
    keep = make_post(bob)
    build_thread(client, alice, bob, post["id"], comments=3, replies_per_comment=2)
    build_thread(client, bob, alice, keep["id"], comments=1, replies_per_comment=1)

    store = app.state.blob_store
    image_path = store.path_for(store.name_from_url(image_url))
    assert os.path.exists(image_path)

    before = count_rows(db, "posts") + count_rows(db, "comments") + count_rows(db, "replies")
    result = delete_post_cascade(db, store, post["id"], as_caller(alice))
    after = count_rows(db, "posts") + count_rows(db, "comments") + count_rows(db, "replies")

    assert result.comments_deleted == 3
    assert result.replies_deleted == 6
    assert result.image_deleted is True
    assert result.rows_deleted == 1 + 3 + 6
    assert before - after == result.rows_deleted
    assert not os.path.exists(image_path)
    # Unrelated thread untouched
    assert client.get(f"/api/posts/{keep['id']}").json()["reply_count"] == 1


def test_blob_failure_rolls_back_everything(client, app, db, alice, bob, make_post, tmp_path):
    post = make_post(alice, imageUrl="/cdn/posts/some-image.png")
    build_thread(client, alice, bob, post["id"])
    rows_before = (count_rows(db, "posts"), count_rows(db, "comments"), count_rows(db, "replies"))

    failing = FailingBlobStore(str(tmp_path / "uploads"))
    app.dependency_overrides[get_blob_store] = lambda: failing
    try:
        resp = client.delete(f"/api/posts/{post['id']}", headers=alice.headers)
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"message": "Failed to delete associated image."}
    assert failing.delete_calls == 1
    assert (count_rows(db, "posts"), count_rows(db, "comments"), count_rows(db, "replies")) == rows_before


def test_blob_failure_surfaces_as_blob_deletion_failed(db, app, alice, make_post, tmp_path):
    post = make_post(alice, imageUrl="/cdn/posts/x.png")
    with pytest.raises(BlobDeletionFailed):
        delete_post_cascade(db, FailingBlobStore(str(tmp_path)), post["id"], as_caller(alice))
    assert count_rows(db, "posts") == 1


def test_post_without_image_never_touches_blob_store(db, alice, make_post, tmp_path):
    post = make_post(alice)
    failing = FailingBlobStore(str(tmp_path))
    result = delete_post_cascade(db, failing, post["id"], as_caller(alice))
    assert failing.delete_calls == 0
    assert result.image_deleted is False
    assert count_rows(db, "posts") == 0


def test_missing_image_file_does_not_block_delete(client, alice, make_post, db):
    post = make_post(alice, imageUrl="/cdn/posts/already-gone.png")
    resp = client.delete(f"/api/posts/{post['id']}", headers=alice.headers)
    assert resp.status_code == 200
    assert count_rows(db, "posts") == 0


def test_forbidden_aborts_before_any_mutation(db, app, alice, bob, make_post, tmp_path):
    post = make_post(alice, imageUrl="/cdn/posts/x.png")
    failing = FailingBlobStore(str(tmp_path))
    with pytest.raises(Forbidden):
        delete_post_cascade(db, failing, post["id"], as_caller(bob))
    assert failing.delete_calls == 0
    assert count_rows(db, "posts") == 1


def test_delete_twice_reports_not_found(client, alice, make_post):
    post = make_post(alice)
    first = client.delete(f"/api/posts/{post['id']}", headers=alice.headers)
    assert first.status_code == 200
    assert first.json() == {"message": "Post deleted successfully."}
    second = client.delete(f"/api/posts/{post['id']}", headers=alice.headers)
    assert second.status_code == 404
    assert second.json() == {"message": "Post not found."}


def test_missing_post_raises_not_found(db, app, alice):
    with pytest.raises(NotFound):
        delete_post_cascade(db, app.state.blob_store, 404, as_caller(alice))


def test_other_user_forbidden_admin_allowed(client, alice, bob, admin, make_post):
    post = make_post(alice, community="/gen/")
    assert client.delete(f"/api/posts/{post['id']}", headers=bob.headers).status_code == 403
    assert client.delete(f"/api/posts/{post['id']}", headers=admin.headers).status_code == 200
    assert client.get(f"/api/posts/{post['id']}").status_code == 404


def test_owner_delete_empties_thread(client, alice, bob, make_post):
    post = make_post(alice)
    comment = client.post(f"/api/posts/{post['id']}/comments", json={"content": "C"}, headers=bob.headers).json()
    client.post(f"/api/comments/{comment['id']}/replies", json={"content": "R"}, headers=bob.headers)

    assert client.delete(f"/api/posts/{post['id']}", headers=alice.headers).status_code == 200
    assert client.get(f"/api/comments/{comment['id']}/replies").json() == []
    assert client.get(f"/api/posts/{post['id']}/comments").status_code == 404


def test_busy_database_fails_before_image_is_removed(client, app, db, alice, make_post):
    image_url = upload(client, alice)
    post = make_post(alice, imageUrl=image_url)
    store = app.state.blob_store
    image_path = store.path_for(store.name_from_url(image_url))

    # Another writer holds the lock for the whole attempt
    writer = sqlite3.connect(db.path, isolation_level=None)
    try:
        writer.execute("BEGIN IMMEDIATE")
        writer.execute("INSERT INTO users (username, email, password_hash) VALUES ('zed', 'zed@example.com', 'x')")
        impatient = Database(db.path, timeout=0.1)
        with pytest.raises(sqlite3.OperationalError, match="locked"):
            delete_post_cascade(impatient, store, post["id"], as_caller(alice))
        assert os.path.exists(image_path)
    finally:
        writer.execute("ROLLBACK")
        writer.close()

    assert count_rows(db, "posts") == 1
    assert client.delete(f"/api/posts/{post['id']}", headers=alice.headers).status_code == 200
    assert not os.path.exists(image_path)


def test_post_row_not_deleted_rolls_back_thread(client, db, alice, bob, make_post):
    post = make_post(alice)
    build_thread(client, alice, bob, post["id"])
    rows_before = (count_rows(db, "posts"), count_rows(db, "comments"), count_rows(db, "replies"))

    # Replies and comments go, but the final post delete affects no row
    with db.connect() as conn:
        conn.execute("CREATE TRIGGER keep_posts BEFORE DELETE ON posts BEGIN SELECT RAISE(IGNORE); END")
        conn.commit()

    resp = client.delete(f"/api/posts/{post['id']}", headers=alice.headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Post not found during deletion."}
    assert (count_rows(db, "posts"), count_rows(db, "comments"), count_rows(db, "replies")) == rows_before
