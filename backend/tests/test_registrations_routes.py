from datetime import datetime


def registration_row(registration_id=10, name="Guest", comment="See you", event=1):
    return {
        "id": registration_id,
        "name": name,
        "comment": comment,
        "event": event,
        "created": datetime(2025, 2, 1, 9, 30, 0),
    }


EVENT = {"id": 1, "name": "Test Event", "slug": "test-event", "description": ""}


def test_create_registration_without_token(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.side_effect = [EVENT, registration_row()]

    payload = {"name": "Guest", "comment": "See you", "event": 1}
    response = client.post("/registrations", json=payload)

    assert response.status_code == 201
    data = response.get_json()
    assert data["id"] == 10
    assert data["event"] == 1
    assert data["created"] == "2025-02-01T09:30:00"

    args, _ = mock_cursor.execute.call_args_list[1]
    assert args[1] == ("Guest", "See you", 1)


def test_create_registration_comment_escapes_past_limit(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.side_effect = [EVENT, registration_row()]

    payload = {"name": "Guest", "comment": "<" * 400, "event": 1}
    response = client.post("/registrations", json=payload)

    assert response.status_code == 201
    args, _ = mock_cursor.execute.call_args_list[1]
    assert args[1][1] == "&lt;" * 400


def test_create_registration_event_as_string_id(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.side_effect = [EVENT, registration_row()]

    response = client.post("/registrations", json={"name": "Guest", "event": "1"})

    assert response.status_code == 201
    args, _ = mock_cursor.execute.call_args_list[0]
    assert args[1] == (1,)


def test_create_registration_unknown_event(client, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    response = client.post("/registrations", json={"name": "Guest", "event": 99})

    assert response.status_code == 404
    assert response.get_json()["errors"] == [
        {"param": "event", "msg": "not found", "location": "body"}
    ]


def test_create_registration_invalid_input(client, mock_db):
    mock_conn, mock_cursor = mock_db

    payload = {"name": "", "comment": "x" * 401, "event": "abc"}
    response = client.post("/registrations", json=payload)

    assert response.status_code == 400
    messages = [e["msg"] for e in response.get_json()["errors"]]
    assert messages == [
        "name must not be empty",
        "comment may be at most 400 characters",
        "event must be a valid event id",
    ]
    mock_cursor.execute.assert_not_called()


def test_list_registrations(client, mock_db, make_user, auth_header):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.side_effect = [make_user(), EVENT]
    mock_cursor.fetchall.return_value = [registration_row(), registration_row(registration_id=11)]

    response = client.get("/registrations?event=1", headers=auth_header(1))

    assert response.status_code == 200
    assert [r["id"] for r in response.get_json()] == [10, 11]


def test_list_registrations_requires_token(client):
    response = client.get("/registrations?event=1")
    assert response.status_code == 401


def test_delete_registration(client, mock_db, make_user, auth_header):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = make_user()
    mock_cursor.rowcount = 1

    response = client.delete("/registrations/10", headers=auth_header(1))

    assert response.status_code == 200


def test_delete_registration_missing(client, mock_db, make_user, auth_header):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = make_user()
    mock_cursor.rowcount = 0

    response = client.delete("/registrations/10", headers=auth_header(1))

    assert response.status_code == 404


def test_delete_registration_requires_token(client):
    response = client.delete("/registrations/10")
    assert response.status_code == 401
