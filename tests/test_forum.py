from barangay_connect.extensions import db
from barangay_connect.models import ForumPost


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _setup_residents(make_unit, make_resident, resident_token):
    isidro = make_unit(name="San Isidro")
    cruz = make_unit(name="Santa Cruz")
    make_resident(isidro, email="juan@example.com")
    make_resident(cruz, email="pedro@example.com", first_name="Pedro")
    return isidro, cruz, resident_token("juan@example.com"), resident_token("pedro@example.com")


def _post(client, token, title="Water interruption on Saturday", content="Maynilad will cut water from 8am to 5pm."):
    return client.post("/api/forum/posts", json={"title": title, "content": content}, headers=_auth(token))


def test_forum_requires_resident_token(client):
    assert client.get("/api/forum/posts").status_code == 401
    assert _post(client, "bogus").status_code == 401


def test_posts_are_scoped_to_resident_unit(client, make_unit, make_resident, resident_token):
    isidro, cruz, juan, pedro = _setup_residents(make_unit, make_resident, resident_token)

    resp = _post(client, juan)
    assert resp.status_code == 201
    post = resp.get_json()
    assert post["barangayId"] == isidro.id
    assert post["author"]["firstName"] == "Juan"
    assert post["replyCount"] == 0

    own = client.get("/api/forum/posts", headers=_auth(juan)).get_json()
    assert [p["id"] for p in own] == [post["id"]]

    assert client.get("/api/forum/posts", headers=_auth(pedro)).get_json() == []

    resp = client.get(f"/api/forum/posts?barangayId={isidro.id}", headers=_auth(pedro))
    assert resp.status_code == 403
    resp = client.get(f"/api/forum/posts?barangayId={cruz.id}", headers=_auth(pedro))
    assert resp.status_code == 200


def test_foreign_post_is_not_found(client, make_unit, make_resident, resident_token):
    _, _, juan, pedro = _setup_residents(make_unit, make_resident, resident_token)
    post_id = _post(client, juan).get_json()["id"]

    resp = client.get(f"/api/forum/posts/{post_id}/replies", headers=_auth(pedro))
    assert resp.status_code == 404

    resp = client.post(f"/api/forum/posts/{post_id}/replies", json={"content": "Hello"}, headers=_auth(pedro))
    assert resp.status_code == 404

    resp = client.get("/api/forum/posts/9999/replies", headers=_auth(juan))
    assert resp.status_code == 404


def test_replies_in_order_and_counted(client, make_unit, make_resident, resident_token):
    isidro, _, juan, _ = _setup_residents(make_unit, make_resident, resident_token)
    make_resident(isidro, email="maria@example.com", first_name="Maria")
    maria = resident_token("maria@example.com")
    post_id = _post(client, juan).get_json()["id"]

    url = f"/api/forum/posts/{post_id}/replies"
    assert client.post(url, json={"content": "Thanks for the heads up"}, headers=_auth(maria)).status_code == 201
    assert client.post(url, json={"content": "Will store water tonight"}, headers=_auth(juan)).status_code == 201

    replies = client.get(url, headers=_auth(juan)).get_json()
    assert [r["content"] for r in replies] == ["Thanks for the heads up", "Will store water tonight"]
    assert replies[0]["author"]["firstName"] == "Maria"

    posts = client.get("/api/forum/posts", headers=_auth(maria)).get_json()
    assert posts[0]["replyCount"] == 2


def test_pinned_posts_first_then_oldest(client, make_unit, make_resident, resident_token):
    _, _, juan, _ = _setup_residents(make_unit, make_resident, resident_token)
    first = _post(client, juan, title="First post here").get_json()["id"]
    second = _post(client, juan, title="Second post here").get_json()["id"]
    pinned = _post(client, juan, title="Barangay assembly").get_json()["id"]

    row = db.session.get(ForumPost, pinned)
    row.is_pinned = True
    db.session.commit()

    posts = client.get("/api/forum/posts", headers=_auth(juan)).get_json()
    assert [p["id"] for p in posts] == [pinned, first, second]


def test_forum_validation(client, make_unit, make_resident, resident_token):
    _, _, juan, _ = _setup_residents(make_unit, make_resident, resident_token)

    resp = _post(client, juan, title="Hey", content="short")
    assert resp.status_code == 400
    assert set(resp.get_json()["errors"]) == {"title", "content"}

    post_id = _post(client, juan).get_json()["id"]
    url = f"/api/forum/posts/{post_id}/replies"
    assert client.post(url, json={"content": ""}, headers=_auth(juan)).status_code == 400
    assert client.post(url, json={"content": "x" * 1001}, headers=_auth(juan)).status_code == 400
    assert client.post(url, json={"content": "x" * 1000}, headers=_auth(juan)).status_code == 201
