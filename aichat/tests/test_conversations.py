"""Tests for conversation, message, fixed prompt and profile endpoints."""

from fastapi.testclient import TestClient

API = "/api/v1"


def create_conversation(client: TestClient, headers, name: str = "Trip planning", **extra):
    response = client.post(f"{API}/conversations", json={"name": name, **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def add_message(client: TestClient, headers, conversation_id: str, content: str, role="user"):
    response = client.post(
        f"{API}/messages",
        json={"conversationId": conversation_id, "content": content, "role": role},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestConversations:
    def test_create_and_get(self, client: TestClient, auth_headers) -> None:
        created = create_conversation(
            client, auth_headers, systemPrompt="Be brief", model="m1", temperature=0.3
        )

        response = client.get(f"{API}/conversations/{created['id']}", headers=auth_headers)

        data = response.json()["data"]
        assert data["name"] == "Trip planning"
        assert data["systemPrompt"] == "Be brief"
        assert data["model"] == "m1"
        assert data["temperature"] == 0.3
        assert data["isActive"] is True
        assert data["messageCount"] == 0

    def test_list_is_newest_first_with_counts(self, client: TestClient, auth_headers) -> None:
        first = create_conversation(client, auth_headers, name="First")
        create_conversation(client, auth_headers, name="Second")
        add_message(client, auth_headers, first["id"], "hello")
        client.put(
            f"{API}/conversations/{first['id']}", json={"name": "First again"}, headers=auth_headers
        )

        rows = client.get(f"{API}/conversations", headers=auth_headers).json()["data"]

        assert [row["name"] for row in rows] == ["First again", "Second"]
        assert [row["messageCount"] for row in rows] == [1, 0]

    def test_list_filters_by_name(self, client: TestClient, auth_headers) -> None:
        create_conversation(client, auth_headers, name="Cooking ideas")
        create_conversation(client, auth_headers, name="Work notes")

        rows = client.get(
            f"{API}/conversations", params={"q": "cook"}, headers=auth_headers
        ).json()["data"]

        assert [row["name"] for row in rows] == ["Cooking ideas"]

    def test_update_ignores_missing_fields(self, client: TestClient, auth_headers) -> None:
        created = create_conversation(client, auth_headers, systemPrompt="Keep me")

        response = client.put(
            f"{API}/conversations/{created['id']}",
            json={"temperature": 1.5, "isActive": False},
            headers=auth_headers,
        )

        data = response.json()["data"]
        assert data["systemPrompt"] == "Keep me"
        assert data["temperature"] == 1.5
        assert data["isActive"] is False

    def test_delete_removes_messages(self, client: TestClient, auth_headers) -> None:
        created = create_conversation(client, auth_headers)
        message = add_message(client, auth_headers, created["id"], "bye")

        response = client.delete(f"{API}/conversations/{created['id']}", headers=auth_headers)

        assert response.json() == {"status": "deleted", "id": created["id"]}
        assert client.get(f"{API}/conversations/{created['id']}", headers=auth_headers).status_code == 404
        assert client.get(f"{API}/messages/{message['id']}", headers=auth_headers).status_code == 404

    def test_other_users_cannot_see_conversation(
        self, client: TestClient, auth_headers, make_user, login
    ) -> None:
        created = create_conversation(client, auth_headers)
        intruder = login(make_user(email="other@example.com").email)

        assert client.get(f"{API}/conversations", headers=intruder).json()["data"] == []
        response = client.get(f"{API}/conversations/{created['id']}", headers=intruder)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "E5000"
        assert client.delete(f"{API}/conversations/{created['id']}", headers=intruder).status_code == 404


class TestMessages:
    def test_messages_keep_insertion_order(self, client: TestClient, auth_headers) -> None:
        conversation = create_conversation(client, auth_headers)
        for index, role in enumerate(["system", "user", "assistant"]):
            add_message(client, auth_headers, conversation["id"], f"m{index}", role=role)

        messages = client.get(
            f"{API}/messages/conversation/{conversation['id']}", headers=auth_headers
        ).json()["data"]

        assert [m["content"] for m in messages] == ["m0", "m1", "m2"]
        assert [m["sort"] for m in messages] == [1, 2, 3]
        assert messages[0]["reasoningContent"] == ""

    def test_update_and_delete(self, client: TestClient, auth_headers) -> None:
        conversation = create_conversation(client, auth_headers)
        message = add_message(client, auth_headers, conversation["id"], "draft")

        updated = client.put(
            f"{API}/messages/{message['id']}", json={"content": "final"}, headers=auth_headers
        ).json()["data"]
        deleted = client.delete(f"{API}/messages/{message['id']}", headers=auth_headers)

        assert updated["content"] == "final"
        assert updated["role"] == "user"
        assert deleted.json() == {"status": "deleted", "id": message["id"]}
        missing = client.get(f"{API}/messages/{message['id']}", headers=auth_headers)
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "E5001"

    def test_rejects_unknown_role(self, client: TestClient, auth_headers) -> None:
        conversation = create_conversation(client, auth_headers)

        response = client.post(
            f"{API}/messages",
            json={"conversationId": conversation["id"], "content": "x", "role": "tool"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_cannot_post_into_foreign_conversation(
        self, client: TestClient, auth_headers, make_user, login
    ) -> None:
        conversation = create_conversation(client, auth_headers)
        intruder = login(make_user(email="other@example.com").email)

        response = client.post(
            f"{API}/messages",
            json={"conversationId": conversation["id"], "content": "x", "role": "user"},
            headers=intruder,
        )

        assert response.status_code == 404

    def test_list_all_messages_is_scoped_to_owner(
        self, client: TestClient, auth_headers, make_user, login
    ) -> None:
        first = create_conversation(client, auth_headers, name="First")
        second = create_conversation(client, auth_headers, name="Second")
        add_message(client, auth_headers, first["id"], "a1")
        add_message(client, auth_headers, first["id"], "a2", role="assistant")
        add_message(client, auth_headers, second["id"], "b1")
        other = login(make_user(email="other@example.com").email)
        foreign = create_conversation(client, other, name="Theirs")
        add_message(client, other, foreign["id"], "not yours")

        mine = client.get(f"{API}/messages", headers=auth_headers).json()["data"]["items"]
        theirs = client.get(f"{API}/messages", headers=other).json()["data"]["items"]

        assert sorted(m["content"] for m in mine) == ["a1", "a2", "b1"]
        assert {m["conversationId"] for m in mine} == {first["id"], second["id"]}
        assert [m["content"] for m in theirs] == ["not yours"]


class TestFixedPrompts:
    def test_pagination_and_search(self, client: TestClient, auth_headers) -> None:
        for index in range(3):
            client.post(
                f"{API}/fixed-prompts",
                json={"name": f"Prompt {index}", "content": f"Body {index}"},
                headers=auth_headers,
            )
        client.post(
            f"{API}/fixed-prompts",
            json={"name": "Translator", "content": "Translate to French"},
            headers=auth_headers,
        )

        page = client.get(
            f"{API}/fixed-prompts", params={"page": 2, "page_size": 3}, headers=auth_headers
        ).json()["data"]
        search = client.get(
            f"{API}/fixed-prompts", params={"search": "french"}, headers=auth_headers
        ).json()["data"]

        assert page["total"] == 4
        assert page["totalPages"] == 2
        assert page["page"] == 2
        assert len(page["items"]) == 1
        assert [p["name"] for p in search["items"]] == ["Translator"]

    def test_page_size_is_bounded(self, client: TestClient, auth_headers) -> None:
        response = client.get(
            f"{API}/fixed-prompts", params={"page_size": 500}, headers=auth_headers
        )

        assert response.status_code == 422

    def test_update_get_delete(self, client: TestClient, auth_headers) -> None:
        prompt = client.post(
            f"{API}/fixed-prompts",
            json={"name": "Terse", "content": "Be terse"},
            headers=auth_headers,
        ).json()["data"]

        updated = client.put(
            f"{API}/fixed-prompts/{prompt['id']}",
            json={"isActive": False},
            headers=auth_headers,
        ).json()["data"]
        fetched = client.get(f"{API}/fixed-prompts/{prompt['id']}", headers=auth_headers)
        deleted = client.delete(f"{API}/fixed-prompts/{prompt['id']}", headers=auth_headers)

        assert updated["isActive"] is False
        assert updated["content"] == "Be terse"
        assert fetched.json()["data"]["name"] == "Terse"
        assert deleted.json()["status"] == "deleted"
        gone = client.get(f"{API}/fixed-prompts/{prompt['id']}", headers=auth_headers)
        assert gone.json()["error"]["code"] == "E5003"


class TestProfile:
    def test_get_and_update_profile(self, client: TestClient, auth_headers) -> None:
        response = client.put(
            f"{API}/users/profile",
            json={"name": "Renamed", "email": "Renamed@Example.com"},
            headers=auth_headers,
        )

        assert response.status_code == 200, response.text
        profile = client.get(f"{API}/users/profile", headers=auth_headers).json()["data"]
        assert profile["name"] == "Renamed"
        assert profile["email"] == "renamed@example.com"

    def test_email_must_be_unique(self, client: TestClient, auth_headers, make_user) -> None:
        make_user(email="taken@example.com")

        response = client.put(
            f"{API}/users/profile", json={"email": "taken@example.com"}, headers=auth_headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "E2009"

    def test_delete_account_removes_everything(self, client: TestClient, auth_headers) -> None:
        conversation = create_conversation(client, auth_headers)
        add_message(client, auth_headers, conversation["id"], "hello")

        response = client.delete(f"{API}/users/account", headers=auth_headers)

        assert response.json() == {"status": "deleted"}
        assert client.get(f"{API}/auth/me", headers=auth_headers).status_code == 401
        failed = client.post(
            f"{API}/auth/login",
            json={"email": "user@example.com", "password": "secret-pass"},
        )
        assert failed.status_code == 401
