import pytest
from fastapi import status

from core.exceptions import UpstreamUnavailableError

ALICE = "0x" + "a" * 40
BOB = "0x" + "b" * 40


async def create_profile(client, wallet_address, username):
    response = await client.post(
        "/api/users/profile",
        json={"walletAddress": wallet_address, "username": username},
    )
    assert response.status_code == status.HTTP_200_OK
    return response.json()


async def create_post(client, wallet_address, content="gm"):
    response = await client.post(
        "/api/posts", json={"walletAddress": wallet_address, "content": content}
    )
    assert response.status_code == status.HTTP_201_CREATED
    return response.json()


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_root(self, async_client):
        response = await async_client.get("/")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"message": "Slacker Backend is running", "status": "OK"}

    async def test_healthcheck(self, async_client):
        response = await async_client.get("/healthcheck")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "X-Correlation-ID" in response.headers
        assert "X-Process-Time" in response.headers

    async def test_detailed(self, async_client):
        response = await async_client.get("/monitoring/detailed")
        assert response.status_code == status.HTTP_200_OK
        components = response.json()["components"]
        assert components["database"]["status"] == "healthy"
        assert "stats" in components["price_cache"]
        assert components["cleanup_scheduler"]["running"] is False


class TestUserEndpoints:
    async def test_profile_roundtrip(self, async_client):
        created = await create_profile(async_client, ALICE.upper().replace("0X", "0x"), "alice")
        assert created["walletAddress"] == ALICE
        assert created["bio"] == "New to Slacker"
        assert created["accountType"] == "normal"

        response = await async_client.get(f"/api/users/profile/{ALICE}")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["username"] == "alice"

    async def test_missing_profile(self, async_client):
        response = await async_client.get(f"/api/users/profile/{BOB}")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"message": "User not found", "error": "NOT_FOUND"}

    async def test_invalid_wallet(self, async_client):
        response = await async_client.post(
            "/api/users/profile", json={"walletAddress": "0x123", "username": "alice"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Invalid Ethereum wallet address"

    async def test_missing_body_field(self, async_client):
        response = await async_client.post("/api/users/profile", json={"walletAddress": ALICE})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "VALIDATION_ERROR"

    async def test_profile_picture_and_list(self, async_client):
        await create_profile(async_client, ALICE, "alice")
        response = await async_client.post(
            "/api/users/profile/picture",
            json={
                "walletAddress": ALICE,
                "imageType": "profile",
                "imageUrl": "https://cdn.io/p.png",
            },
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["profilePicture"] == "https://cdn.io/p.png"

        users = (await async_client.get("/api/users")).json()
        assert [u["username"] for u in users] == ["alice"]


class TestPostEndpoints:
    async def test_create_and_list(self, async_client):
        await create_profile(async_client, ALICE, "alice")
        post = await create_post(async_client, ALICE, "hello slacker")
        assert post["author"]["walletAddress"] == ALICE
        assert post["likeCount"] == 0

        listing = (await async_client.get("/api/posts")).json()
        assert [p["id"] for p in listing] == [post["id"]]

        mine = (await async_client.get(f"/api/posts/user/{ALICE}")).json()
        assert len(mine) == 1

    async def test_like_toggle_and_comment(self, async_client):
        await create_profile(async_client, ALICE, "alice")
        await create_profile(async_client, BOB, "bob")
        post = await create_post(async_client, ALICE)

        liked = await async_client.post(
            f"/api/posts/{post['id']}/like", json={"walletAddress": BOB}
        )
        assert liked.status_code == status.HTTP_200_OK
        assert liked.json()["likeCount"] == 1
        assert liked.json()["likes"] == [BOB]

        unliked = await async_client.post(
            f"/api/posts/{post['id']}/like", json={"walletAddress": BOB}
        )
        assert unliked.json()["likeCount"] == 0

        commented = await async_client.post(
            f"/api/posts/{post['id']}/comment",
            json={"walletAddress": BOB, "content": "nice"},
        )
        assert commented.status_code == status.HTTP_200_OK
        body = commented.json()
        assert body["commentCount"] == 1
        assert body["comments"][0]["author"]["username"] == "bob"

    async def test_delete_post_authorization(self, async_client):
        await create_profile(async_client, ALICE, "alice")
        await create_profile(async_client, BOB, "bob")
        post = await create_post(async_client, ALICE)

        forbidden = await async_client.request(
            "DELETE", f"/api/posts/{post['id']}", json={"walletAddress": BOB}
        )
        assert forbidden.status_code == status.HTTP_403_FORBIDDEN
        assert forbidden.json() == {
            "message": "Not authorized to delete this post",
            "error": "FORBIDDEN",
        }

        deleted = await async_client.request(
            "DELETE", f"/api/posts/{post['id']}", json={"walletAddress": ALICE}
        )
        assert deleted.status_code == status.HTTP_200_OK
        assert (await async_client.get(f"/api/posts/{post['id']}")).status_code == 404

    async def test_delete_comment(self, async_client):
        await create_profile(async_client, ALICE, "alice")
        await create_profile(async_client, BOB, "bob")
        post = await create_post(async_client, ALICE)
        commented = await async_client.post(
            f"/api/posts/{post['id']}/comment",
            json={"walletAddress": BOB, "content": "mine"},
        )
        comment_id = commented.json()["comments"][0]["id"]

        forbidden = await async_client.request(
            "DELETE", f"/api/posts/comments/{comment_id}", json={"walletAddress": ALICE}
        )
        assert forbidden.status_code == status.HTTP_403_FORBIDDEN

        deleted = await async_client.request(
            "DELETE", f"/api/posts/comments/{comment_id}", json={"walletAddress": BOB}
        )
        assert deleted.status_code == status.HTTP_200_OK

    async def test_like_missing_post(self, async_client):
        await create_profile(async_client, BOB, "bob")
        response = await async_client.post("/api/posts/999/like", json={"walletAddress": BOB})
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "Post not found"

    async def test_bad_pagination(self, async_client):
        response = await async_client.get("/api/posts", params={"limit": 500})
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestNotificationEndpoints:
    async def test_inbox_and_mark_read(self, async_client):
        await create_profile(async_client, ALICE, "alice")
        await create_profile(async_client, BOB, "bob")
        post = await create_post(async_client, ALICE)
        await async_client.post(f"/api/posts/{post['id']}/like", json={"walletAddress": BOB})
        await async_client.post(
            f"/api/posts/{post['id']}/comment",
            json={"walletAddress": BOB, "content": "hey"},
        )

        inbox = (await async_client.get(f"/api/notifications/{ALICE}")).json()
        assert inbox["unreadCount"] == 2
        first_id = inbox["notifications"][0]["id"]
        assert inbox["notifications"][0]["sender"]["walletAddress"] == BOB

        marked = await async_client.post(
            f"/api/notifications/{first_id}/mark-read", json={"walletAddress": ALICE}
        )
        assert marked.status_code == status.HTTP_200_OK
        assert marked.json()["read"] is True

        stolen = await async_client.post(
            f"/api/notifications/{first_id}/mark-read", json={"walletAddress": BOB}
        )
        assert stolen.status_code == status.HTTP_404_NOT_FOUND

        all_read = await async_client.post(
            "/api/notifications/mark-all-read", json={"walletAddress": ALICE}
        )
        assert all_read.json()["updated"] == 1

        inbox = (await async_client.get(f"/api/notifications/{ALICE}")).json()
        assert inbox["unreadCount"] == 0


class TestCryptoEndpoints:
    async def test_top_is_cached(self, async_client, mock_price_provider):
        first = await async_client.get("/api/crypto/top")
        second = await async_client.get("/api/crypto/top")
        assert first.status_code == status.HTTP_200_OK
        assert first.json() == second.json()
        assert first.json()[0] == {
            "symbol": "BTC",
            "name": "Bitcoin",
            "price": 65000.0,
            "percent_change_24h": 1.5,
        }
        assert mock_price_provider.fetch_quotes.await_count == 1

    async def test_quotes(self, async_client, mock_price_provider):
        response = await async_client.get("/api/crypto/quotes", params={"symbols": "eth,btc"})
        assert response.status_code == status.HTTP_200_OK
        mock_price_provider.fetch_quotes.assert_awaited_once_with(
            limit=100, symbols=("BTC", "ETH")
        )

    async def test_upstream_unavailable(self, async_client, mock_price_provider):
        mock_price_provider.fetch_quotes.side_effect = UpstreamUnavailableError(
            "fake", "timed out after 10s", "Error fetching cryptocurrency data"
        )
        response = await async_client.get("/api/crypto/top")
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json() == {
            "message": "Error fetching cryptocurrency data",
            "error": "UPSTREAM_UNAVAILABLE",
        }


class TestUploadEndpoints:
    async def test_upload_media(self, async_client):
        response = await async_client.post(
            "/api/upload", files={"file": ("a.png", b"\x89PNG-bytes", "image/png")}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["url"] == "https://media.example.com/slacker/picture.png"
        assert response.json()["type"] == "image"

    async def test_upload_rejects_type(self, async_client, mock_media_provider):
        response = await async_client.post(
            "/api/upload", files={"file": ("a.pdf", b"%PDF", "application/pdf")}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Unsupported file type"
        mock_media_provider.upload.assert_not_awaited()

    async def test_upload_profile_image(self, async_client):
        await create_profile(async_client, ALICE, "alice")
        response = await async_client.post(
            "/api/upload/profile",
            data={"walletAddress": ALICE},
            files={"file": ("p.png", b"\x89PNG-bytes", "image/png")},
        )
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["user"]["profilePicture"] == body["url"]


class TestChatEndpoints:
    async def test_ai_chat(self, async_client):
        response = await async_client.post("/api/ai/chat", json={"message": "hello"})
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["message"] == "Hello from the model"
        assert body["tokenUsage"]["total_tokens"] == 17

    async def test_conversation(self, async_client):
        response = await async_client.post(
            "/api/chat",
            json={
                "messages": [{"role": "user", "content": "hi"}],
                "walletAddress": ALICE,
            },
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["walletAddress"] == ALICE

    async def test_empty_message_rejected(self, async_client):
        response = await async_client.post("/api/ai/chat", json={"message": "  "})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_stream(self, async_client):
        response = await async_client.post(
            "/api/chat/stream", json={"messages": [{"role": "user", "content": "hi"}]}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/event-stream")
        assert 'data: {"content": "Hel"}' in response.text
        assert response.text.rstrip().endswith("data: [DONE]")

    async def test_health(self, async_client):
        response = await async_client.get("/api/chat/health")
        assert response.json()["status"] == "healthy"
