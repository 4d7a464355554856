import httpx
import pytest

from components.accesscontrol import AccessDecisionEngine, BillingServiceClient, MainServiceClient
from components.objectstore.errors import ErrorKind, StorageError


def main_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/internal/users/me":
        token = request.headers.get("Authorization", "")
        if token == "Bearer good":
            return httpx.Response(200, json={"id": 1, "username": "alice", "email": "a@example.com", "extra": 1})
        if token == "Bearer ghost":
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(401, json={"error": "unauthorized"})
    if path == "/internal/bars/by-file-key":
        if request.url.params["key"] == "alice/course.mp4":
            return httpx.Response(200, json={"id": 10, "type": "premium"})
        return httpx.Response(200, content=b"null", headers={"content-type": "application/json"})
    if path == "/internal/bars/10/owner":
        return httpx.Response(200, json={"isOwner": request.url.params["userId"] == "1"})
    return httpx.Response(500)


def billing_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/internal/purchases/check":
        bought = request.url.params["userId"] == "2" and request.url.params["barId"] == "10"
        return httpx.Response(200, json={"hasPurchased": bought})
    if path == "/internal/subscriptions/active":
        if request.url.params["userId"] == "3":
            return httpx.Response(200, json={
                "hasActiveSubscription": True, "planId": 4, "subscriptionPlan": "pro",
                "period": "monthly", "expiresAt": "2030-01-01T00:00:00Z",
            })
        if request.url.params["userId"] == "9":
            return httpx.Response(503)
        return httpx.Response(200, json={"hasActiveSubscription": False})
    return httpx.Response(404)


def main_client():
    http = httpx.AsyncClient(transport=httpx.MockTransport(main_handler))
    return MainServiceClient("main.internal", http=http)


def billing_client():
    http = httpx.AsyncClient(transport=httpx.MockTransport(billing_handler))
    return BillingServiceClient("http://billing.internal/", http=http)


@pytest.mark.asyncio
async def test_resolve_identity():
    client = main_client()
    user = await client.resolve("good")
    assert (user.id, user.username) == (1, "alice")

    with pytest.raises(StorageError) as ei:
        await client.resolve("bad")
    assert ei.value.kind is ErrorKind.INVALID_TOKEN

    with pytest.raises(StorageError) as ei:
        await client.resolve("ghost")
    assert ei.value.kind is ErrorKind.NOT_FOUND
    assert ei.value.code == "PROFILE_NOT_FOUND"
    await client.aclose()


@pytest.mark.asyncio
async def test_collection_lookup_and_ownership():
    client = main_client()
    assert client.base_url == "http://main.internal"
    col = await client.collection_by_file_key("alice/course.mp4")
    assert col.id == "10"
    assert await client.collection_by_file_key("bob/x.pdf") is None
    assert await client.is_owner("10", 1) is True
    assert await client.is_owner("10", 2) is False
    await client.aclose()


@pytest.mark.asyncio
async def test_billing_oracle():
    client = billing_client()
    assert await client.has_purchased(2, "10") is True
    assert await client.has_purchased(3, "10") is False

    sub = await client.active_subscription(3)
    assert sub.active and sub.plan == "pro" and sub.period == "monthly"
    assert not (await client.active_subscription(4)).active

    with pytest.raises(StorageError) as ei:
        await client.active_subscription(9)
    assert ei.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE
    await client.aclose()


@pytest.mark.asyncio
async def test_transport_errors_become_upstream_unavailable():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = BillingServiceClient("http://billing.internal", http=httpx.AsyncClient(transport=httpx.MockTransport(refuse)))
    with pytest.raises(StorageError) as ei:
        await client.has_purchased(1, "10")
    assert ei.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE
    await client.aclose()


def list_body_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/internal/bars/by-file-key":
        return httpx.Response(200, json={"id": 10, "type": "premium"})
    if path == "/internal/subscriptions/active":
        return httpx.Response(200, json={"hasActiveSubscription": False})
    return httpx.Response(200, json=[])


@pytest.mark.asyncio
async def test_non_object_answers_become_upstream_unavailable():
    http = httpx.AsyncClient(transport=httpx.MockTransport(list_body_handler))
    main = MainServiceClient("http://main.internal", http=http)
    billing = BillingServiceClient("http://billing.internal", http=http)

    with pytest.raises(StorageError) as ei:
        await main.is_owner("10", 1)
    assert ei.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE
    with pytest.raises(StorageError) as ei:
        await billing.has_purchased(1, "10")
    assert ei.value.kind is ErrorKind.UPSTREAM_UNAVAILABLE

    # the cascade treats them as "no" and falls through to the subscription check
    decision = await AccessDecisionEngine(main, billing).decide(1, "alice/course.mp4")
    assert decision.allowed is False
    assert decision.collection_id == "10"
    await http.aclose()
