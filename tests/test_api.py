import pytest

from batepapo.models import JOIN_TEXT

from .conftest import drop_messages_table


def register(client, name):
    return client.post("/participants", json={"name": name})


def post(client, user, text, to="Todos", type="message"):
    return client.post("/messages", json={"to": to, "text": text, "type": type}, headers={"user": user})


def visible(client, user, **params):
    response = client.get("/messages", headers={"user": user}, params=params)
    assert response.status_code == 200
    return response.json()


class TestParticipants:
    def test_register_and_list(self, client):
        response = register(client, "Ana")
        assert response.status_code == 201
        assert response.json()["name"] == "Ana"
        assert isinstance(response.json()["lastStatus"], int)

        listed = client.get("/participants")
        assert listed.status_code == 200
        assert [p["name"] for p in listed.json()] == ["Ana"]

    def test_duplicate_name(self, client):
        assert register(client, "Ana").status_code == 201
        response = register(client, "Ana")
        assert response.status_code == 409
        assert response.json() == {"detail": "Nome já em uso."}

    @pytest.mark.parametrize("body", [{}, {"name": ""}, {"name": "<b></b>"}, {"name": 42}])
    def test_invalid_name(self, client, body):
        assert client.post("/participants", json=body).status_code == 422

    def test_heartbeat(self, client):
        register(client, "Ana")
        assert client.post("/status", headers={"user": "Ana"}).status_code == 200
        assert client.post("/status", headers={"user": "Ghost"}).status_code == 404
        assert client.post("/status").status_code == 400


class TestMessages:
    def test_scenario(self, client):
        assert register(client, "Ana").status_code == 201
        assert register(client, "Ana").status_code == 409
        response = post(client, "Ana", "oi")
        assert response.status_code == 201
        body = response.json()
        assert body["from"] == "Ana"
        assert body["to"] == "Todos"
        assert body["type"] == "message"

        messages = visible(client, "Ana")
        assert [(m["text"], m["type"]) for m in messages] == [(JOIN_TEXT, "status"), ("oi", "message")]
        assert set(messages[0]) == {"id", "from", "to", "text", "type", "time"}

    def test_unknown_sender(self, client):
        assert post(client, "Ghost", "oi").status_code == 422

    def test_invalid_type(self, client):
        register(client, "Ana")
        assert post(client, "Ana", "oi", type="status").status_code == 422

    def test_private_message(self, client):
        for name in ["Ana", "Bia", "Caio"]:
            register(client, name)
        post(client, "Ana", "segredo", to="Bia", type="private_message")
        assert "segredo" in [m["text"] for m in visible(client, "Bia")]
        assert "segredo" not in [m["text"] for m in visible(client, "Caio")]

    def test_limit(self, client):
        register(client, "Ana")
        post(client, "Ana", "um")
        post(client, "Ana", "dois")
        assert [m["text"] for m in visible(client, "Ana", limit=2)] == ["um", "dois"]

    @pytest.mark.parametrize("limit", ["0", "-1", "x"])
    def test_bad_limit(self, client, limit):
        register(client, "Ana")
        response = client.get("/messages", headers={"user": "Ana"}, params={"limit": limit})
        assert response.status_code == 422

    def test_update(self, client):
        register(client, "Ana")
        register(client, "Bia")
        message_id = post(client, "Ana", "oi").json()["id"]
        body = {"to": "Todos", "text": "ola", "type": "message"}

        assert client.put(f"/messages/{message_id}", json=body, headers={"user": "Bia"}).status_code == 401
        assert client.put("/messages/9999", json=body, headers={"user": "Ana"}).status_code == 404
        assert client.put(f"/messages/{message_id}", json={**body, "text": ""},
                          headers={"user": "Ana"}).status_code == 422

        response = client.put(f"/messages/{message_id}", json=body, headers={"user": "Ana"})
        assert response.status_code == 200
        assert response.json()["text"] == "ola"
        assert "ola" in [m["text"] for m in visible(client, "Bia")]

    def test_delete(self, client):
        register(client, "Ana")
        register(client, "Bia")
        message_id = post(client, "Ana", "oi").json()["id"]

        assert client.delete(f"/messages/{message_id}", headers={"user": "Bia"}).status_code == 401
        assert client.delete("/messages/nope", headers={"user": "Ana"}).status_code == 404
        assert client.delete(f"/messages/{message_id}", headers={"user": "Ana"}).status_code == 200
        assert "oi" not in [m["text"] for m in visible(client, "Ana")]
        assert client.delete(f"/messages/{message_id}", headers={"user": "Ana"}).status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


class TestRobustness:
    def test_huge_limit(self, client):
        register(client, "Ana")
        post(client, "Ana", "oi")
        messages = visible(client, "Ana", limit="99999999999999999999")
        assert [m["text"] for m in messages] == [JOIN_TEXT, "oi"]

    def test_huge_message_id(self, client):
        register(client, "Ana")
        body = {"to": "Todos", "text": "oi", "type": "message"}
        huge = "99999999999999999999"
        assert client.put(f"/messages/{huge}", json=body, headers={"user": "Ana"}).status_code == 404
        assert client.delete(f"/messages/{huge}", headers={"user": "Ana"}).status_code == 404

    def test_store_failure_is_500_and_service_keeps_running(self, client):
        register(client, "Ana")
        client.portal.call(drop_messages_table, client.app.state.db)

        response = client.get("/messages", headers={"user": "Ana"})
        assert response.status_code == 500
        assert isinstance(response.json()["detail"], str)

        assert post(client, "Ana", "oi").status_code == 500
        assert [p["name"] for p in client.get("/participants").json()] == ["Ana"]
        assert client.post("/status", headers={"user": "Ana"}).status_code == 200
