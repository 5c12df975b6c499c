import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import auth_headers, upload_file, wait_for_status


def test_notifications_are_pushed_to_user_socket(client):
    headers = auth_headers(client)
    token = headers["Authorization"].split()[1]
    uploaded = upload_file(client, headers, "results.json", b'{"tests": []}').json()

    with client.websocket_connect(f"/ws/notifications?token={token}") as websocket:
        resp = client.post("/reports", json={"file_id": uploaded["uuid"], "title": "Nightly"}, headers=headers)
        report_id = resp.json()["report_id"]

        first = websocket.receive_json()
        second = websocket.receive_json()

    assert first["kind"] == "report_in_progress"
    assert first["message"] == 'Your report "Nightly" is being generated...'
    assert second["kind"] == "report_completed"
    assert second["report_id"] == report_id


def test_socket_requires_valid_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/notifications?token=invalid") as websocket:
            websocket.receive_text()


def test_mark_notification_read(client):
    headers = auth_headers(client)
    uploaded = upload_file(client, headers, "results.json", b'{"tests": [1]}').json()
    report_id = client.post("/reports", json={"file_id": uploaded["uuid"]}, headers=headers).json()["report_id"]

    wait_for_status(client, headers, report_id)

    notifications = client.get("/notifications", headers=headers).json()
    target = notifications[0]["uuid"]
    assert client.put(f"/notifications/{target}/read", headers=headers).json()["is_read"]

    unread = client.get("/notifications?unread_only=true", headers=headers).json()
    assert target not in [n["uuid"] for n in unread]

    stranger = auth_headers(client)
    assert client.put(f"/notifications/{target}/read", headers=stranger).status_code == 404
    assert client.delete(f"/notifications/{target}", headers=headers).status_code == 204
