import psycopg

from streamsphere import auth_utils

from conftest import CREATED, auth_header, make_user, make_video


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200


# --- Auth ---

def _created_user(**kwargs):
    return make_user(
        user_id=42,
        email=kwargs["email"],
        username=kwargs["username"],
        hashed_password=kwargs["hashed_password"],
        role=kwargs["role"],
        first_name=kwargs["first_name"],
        last_name=kwargs["last_name"],
    )


def test_register_returns_user_and_token(client, fake_crud):
    fake_crud("get_user_by_email", None)
    fake_crud("get_user_by_username", None)
    fake_crud("create_user", _created_user)

    response = client.post("/api/register", json={
        "email": "new@example.com",
        "username": "newbie",
        "password": "secret123",
        "confirmPassword": "secret123",
        "firstName": "New",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["firstName"] == "New"
    assert body["user"]["role"] == "consumer"
    assert "hashedPassword" not in body["user"]
    assert auth_utils.decode_access_token(body["token"]) == 42

    stored = fake_crud.calls["create_user"][0]
    assert stored["hashed_password"] != "secret123"
    assert auth_utils.verify_password("secret123", stored["hashed_password"])


def test_register_existing_email_conflicts(client, fake_crud):
    fake_crud("get_user_by_email", make_user())
    fake_crud("get_user_by_username", None)
    fake_crud("create_user", _created_user)

    response = client.post("/api/register", json={
        "email": "user1@example.com", "username": "someone-else", "password": "secret123",
    })

    assert response.status_code == 409
    assert "email" in response.json()["detail"]
    assert not fake_crud.calls["create_user"]


def test_register_existing_username_conflicts(client, fake_crud):
    fake_crud("get_user_by_email", None)
    fake_crud("get_user_by_username", make_user())

    response = client.post("/api/register", json={
        "email": "fresh@example.com", "username": "user1", "password": "secret123",
    })

    assert response.status_code == 409
    assert "Username" in response.json()["detail"]


def test_register_rejects_mismatched_passwords(client, fake_crud):
    response = client.post("/api/register", json={
        "email": "new@example.com", "username": "newbie",
        "password": "secret123", "confirmPassword": "secret456",
    })

    assert response.status_code == 400
    assert "Passwords don't match" in response.json()["detail"]["message"]
    assert response.json()["detail"]["fields"] == ["confirmPassword"]


def test_register_names_invalid_fields(client):
    response = client.post("/api/register", json={
        "email": "not-an-email", "username": "newbie", "password": "123",
    })

    assert response.status_code == 400
    fields = response.json()["detail"]["fields"]
    assert "email" in fields
    assert "password" in fields


def test_login_with_valid_credentials(client, fake_crud):
    user = make_user(hashed_password=auth_utils.get_password_hash("secret123"))
    fake_crud("get_user_by_email", user)

    response = client.post("/api/login", json={"email": user["email"], "password": "secret123"})

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["username"] == user["username"]
    assert auth_utils.decode_access_token(body["token"]) == user["id"]


def test_login_with_wrong_password(client, fake_crud):
    fake_crud("get_user_by_email", make_user(hashed_password=auth_utils.get_password_hash("secret123")))

    response = client.post("/api/login", json={"email": "user1@example.com", "password": "wrong-one"})

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_login_unknown_email(client, fake_crud):
    fake_crud("get_user_by_email", None)

    response = client.post("/api/login", json={"email": "ghost@example.com", "password": "secret123"})

    assert response.status_code == 401


def test_logout(client):
    response = client.post("/api/logout")
    assert response.status_code == 200
    assert response.json() == {"message": "Logged out successfully"}


def test_current_user_requires_token(client):
    response = client.get("/api/user")
    assert response.status_code == 401


def test_current_user_rejects_garbage_token(client):
    response = client.get("/api/user", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == 401


def test_current_user_for_deleted_account(client, fake_crud):
    fake_crud("get_user", None)
    response = client.get("/api/user", headers=auth_header(make_user()))
    assert response.status_code == 401


def test_current_user_profile_omits_password(client, fake_crud):
    user = make_user(first_name="Sarah")
    fake_crud("get_user", user)

    response = client.get("/api/user", headers=auth_header(user))

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == user["id"]
    assert body["firstName"] == "Sarah"
    assert "hashedPassword" not in body
    assert "hashed_password" not in body


# --- Videos ---

def test_list_videos_passes_filters_and_paging(client, fake_crud):
    fake_crud("get_videos", [make_video(average_rating=4.0, total_ratings=2)])

    response = client.get("/api/videos", params={"search": "yoga", "genre": "education", "limit": 5, "offset": 10})

    assert response.status_code == 200
    body = response.json()
    assert body[0]["averageRating"] == 4.0
    assert body[0]["totalRatings"] == 2
    assert body[0]["ageRating"] == "G"
    assert body[0]["creator"]["username"] == "user7"
    assert fake_crud.calls["get_videos"][0] == {"limit": 5, "offset": 10, "search": "yoga", "genre": "education"}


def test_list_videos_defaults(client, fake_crud):
    fake_crud("get_videos", [])

    response = client.get("/api/videos")

    assert response.status_code == 200
    assert response.json() == []
    assert fake_crud.calls["get_videos"][0] == {"limit": 20, "offset": 0, "search": None, "genre": None}


def test_list_videos_rejects_bad_limit(client):
    response = client.get("/api/videos", params={"limit": 0})
    assert response.status_code == 400
    assert response.json()["detail"]["fields"] == ["limit"]


def test_get_video_counts_a_view(client, fake_crud):
    fake_crud("get_video", make_video(video_id=3, views=9))
    fake_crud("increment_video_views", None)

    response = client.get("/api/videos/3")

    assert response.status_code == 200
    assert response.json()["views"] == 9
    assert fake_crud.calls["increment_video_views"] == [(3,)]


def test_get_unknown_video(client, fake_crud):
    fake_crud("get_video", None)
    fake_crud("increment_video_views", None)

    response = client.get("/api/videos/99")

    assert response.status_code == 404
    assert not fake_crud.calls["increment_video_views"]


VIDEO_BODY = {
    "title": "Stand-up Comedy Special",
    "publisher": "Comedy Central",
    "producer": "Jane Smith",
    "genre": "comedy",
    "ageRating": "PG-13",
    "description": "Laughs",
}


def _stored_video(**kwargs):
    return {"id": 11, "views": 0, "created_at": CREATED, "updated_at": CREATED,
            "thumbnail_url": None, "video_url": None, "duration": None, **kwargs}


def test_creator_can_create_video(client, fake_crud):
    creator = make_user(user_id=5, role="creator")
    fake_crud("get_user", creator)
    fake_crud("create_video", _stored_video)

    response = client.post("/api/videos", json=VIDEO_BODY, headers=auth_header(creator))

    assert response.status_code == 201
    body = response.json()
    assert body["id"] == 11
    assert body["creatorId"] == 5
    assert body["ageRating"] == "PG-13"
    assert fake_crud.calls["create_video"][0]["age_rating"] == "PG-13"


def test_consumer_cannot_create_video(client, fake_crud):
    consumer = make_user(role="consumer")
    fake_crud("get_user", consumer)
    fake_crud("create_video", _stored_video)

    response = client.post("/api/videos", json=VIDEO_BODY, headers=auth_header(consumer))

    assert response.status_code == 403
    assert not fake_crud.calls["create_video"]


def test_create_video_requires_token(client, fake_crud):
    fake_crud("create_video", _stored_video)
    response = client.post("/api/videos", json=VIDEO_BODY)
    assert response.status_code == 401


def test_create_video_requires_fields(client, fake_crud):
    fake_crud("get_user", make_user(role="creator"))

    response = client.post("/api/videos", json={"title": "Only a title"}, headers=auth_header(make_user(role="creator")))

    assert response.status_code == 400
    fields = response.json()["detail"]["fields"]
    assert {"publisher", "producer", "genre", "ageRating"} <= set(fields)


# --- Comments ---

def _comment(comment_id, content, user):
    return {"id": comment_id, "content": content, "user_id": user["id"], "video_id": 1, "likes": 0,
            "created_at": CREATED, "user": {key: user[key] for key in ("id", "username", "first_name",
                                                                        "last_name", "profile_image_url", "role")}}


def test_list_comments(client, fake_crud):
    user = make_user()
    fake_crud("video_exists", True)
    fake_crud("get_comments_for_video", [_comment(2, "second", user), _comment(1, "first", user)])

    response = client.get("/api/videos/1/comments")

    assert response.status_code == 200
    body = response.json()
    assert [c["content"] for c in body] == ["second", "first"]
    assert body[0]["user"]["username"] == "user1"
    assert body[0]["likes"] == 0


def test_list_comments_returns_everything_unless_paged(client, fake_crud):
    fake_crud("video_exists", True)
    fake_crud("get_comments_for_video", [])

    client.get("/api/videos/1/comments")
    client.get("/api/videos/1/comments", params={"limit": 10, "offset": 20})

    assert fake_crud.calls["get_comments_for_video"] == [
        {"video_id": 1, "limit": None, "offset": 0},
        {"video_id": 1, "limit": 10, "offset": 20},
    ]


def test_list_comments_unknown_video(client, fake_crud):
    fake_crud("video_exists", False)
    response = client.get("/api/videos/1/comments")
    assert response.status_code == 404


def test_add_comment(client, fake_crud):
    user = make_user()
    fake_crud("get_user", user)
    fake_crud("video_exists", True)
    fake_crud("create_comment", lambda content, user_id, video_id: _comment(5, content, user))

    response = client.post("/api/videos/1/comments", json={"content": "Great work!"}, headers=auth_header(user))

    assert response.status_code == 201
    assert response.json()["content"] == "Great work!"
    assert fake_crud.calls["create_comment"][0] == {"content": "Great work!", "user_id": 1, "video_id": 1}


def test_add_comment_requires_token(client, fake_crud):
    fake_crud("video_exists", True)
    response = client.post("/api/videos/1/comments", json={"content": "hi"})
    assert response.status_code == 401


def test_add_empty_comment(client, fake_crud):
    user = make_user()
    fake_crud("get_user", user)
    fake_crud("video_exists", True)

    response = client.post("/api/videos/1/comments", json={"content": ""}, headers=auth_header(user))

    assert response.status_code == 400
    assert response.json()["detail"]["fields"] == ["content"]


# --- Ratings ---

def test_rating_summary_when_unrated(client, fake_crud):
    user = make_user()
    fake_crud("get_user", user)
    fake_crud("video_exists", True)
    fake_crud("get_user_rating_for_video", None)
    fake_crud("get_average_rating", {"average": 0.0, "total": 0})

    response = client.get("/api/videos/1/rating", headers=auth_header(user))

    assert response.status_code == 200
    assert response.json() == {"userRating": None, "averageRating": 0.0, "totalRatings": 0}


def test_rating_summary_requires_token(client):
    response = client.get("/api/videos/1/rating")
    assert response.status_code == 401


def test_rate_video(client, fake_crud):
    user = make_user()
    fake_crud("get_user", user)
    fake_crud("video_exists", True)
    fake_crud("upsert_rating", lambda video_id, user_id, rating: {
        "id": 1, "rating": rating, "user_id": user_id, "video_id": video_id, "created_at": CREATED})
    fake_crud("get_average_rating", {"average": 4.0, "total": 2})

    response = client.post("/api/videos/1/rating", json={"rating": 5}, headers=auth_header(user))

    assert response.status_code == 200
    assert response.json() == {"userRating": 5, "averageRating": 4.0, "totalRatings": 2}
    assert fake_crud.calls["upsert_rating"][0] == {"video_id": 1, "user_id": 1, "rating": 5}


def test_rate_video_out_of_range(client, fake_crud):
    user = make_user()
    fake_crud("get_user", user)
    fake_crud("video_exists", True)
    fake_crud("upsert_rating", None)

    for bad in (0, 6, True, "3", 4.5):
        response = client.post("/api/videos/1/rating", json={"rating": bad}, headers=auth_header(user))
        assert response.status_code == 400
        assert response.json()["detail"]["fields"] == ["rating"]
    assert not fake_crud.calls["upsert_rating"]


def test_rate_unknown_video(client, fake_crud):
    user = make_user()
    fake_crud("get_user", user)
    fake_crud("video_exists", False)
    fake_crud("upsert_rating", None)

    response = client.post("/api/videos/9/rating", json={"rating": 3}, headers=auth_header(user))

    assert response.status_code == 404
    assert not fake_crud.calls["upsert_rating"]


# --- Store failures ---

def test_store_failure_hides_driver_message(client, fake_crud):
    fake_crud("get_videos", raises=psycopg.OperationalError("connection to 10.0.0.5 refused"))

    response = client.get("/api/videos")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
