"""Tests for the HTTP API."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

from fastapi.testclient import TestClient

from scansave.api.app import create_app
from scansave.domain.insights import OverviewInsightRecord
from tests.conftest import (
    BARCODE,
    FakeInsightClient,
    InMemoryInsightRepository,
    InMemoryScanRepository,
    make_scan,
)


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_get_product_scales_to_portion(container) -> None:
    client = TestClient(create_app(container))

    response = client.get(f"/products/{BARCODE}", params={"portion": 50})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["product"]["productName"] == "Sparkling Water"
    assert body["product"]["nutrients"]["Energy (kcal)"] == 100
    assert body["product"]["healthInfo"]["isVegetarian"] is True
    assert body["hasEnoughInfoForAI"] is True
    assert body["portionLabel"] == "Half"


def test_get_product_rejects_bad_barcode(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/products/abc")

    assert response.status_code == 422
    assert response.json()["status"] == "error"


def test_get_product_not_found(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/products/00000000")

    assert response.status_code == 404
    assert "00000000" in response.json()["error"]


def test_scan_product_uses_first_valid_read(container, off_client) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/products/scan",
        json={
            "decoded": ["QR-LINK", "12345", f" {BARCODE} ", "00000000"],
            "portion_percentage": 25,
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["barcode"] == BARCODE
    assert body["product"]["productName"] == "Sparkling Water"
    assert body["portionLabel"] == "Just a bite"
    assert off_client.product_calls == 1


def test_scan_product_without_valid_read(container, off_client) -> None:
    client = TestClient(create_app(container))

    response = client.post("/products/scan", json={"decoded": ["abc", "1234567"]})

    assert response.status_code == 422
    assert response.json()["status"] == "error"
    assert off_client.product_calls == 0


def test_alternatives(container) -> None:
    client = TestClient(create_app(container))

    response = client.get(
        "/alternatives", params={"category": "en:waters", "nutriscore": "b"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["alternatives"][0]["name"] == "Still Water"


def test_create_scan_and_list(
    container, scan_repository: InMemoryScanRepository
) -> None:
    client = TestClient(create_app(container))
    user_id = str(uuid4())

    response = client.post(
        "/scans",
        json={
            "user_id": user_id,
            "barcode": BARCODE,
            "price": 1.25,
            "portion_percentage": 50,
        },
    )

    assert response.status_code == 200
    scan = response.json()["scan"]
    assert scan["userId"] == user_id
    assert scan["price"] == 1.25
    assert scan["nutrients"]["Energy (kcal)"] == 100
    assert len(scan_repository.scans) == 1

    listed = client.get(f"/users/{user_id}/scans").json()["scans"]
    assert [item["barcode"] for item in listed] == [BARCODE]

    stats = client.get(f"/users/{user_id}/stats").json()
    assert stats == {"totalScans": 1, "healthScore": "A"}


def test_create_scan_rejects_non_positive_price(
    container, scan_repository: InMemoryScanRepository
) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/scans", json={"user_id": str(uuid4()), "barcode": BARCODE, "price": 0}
    )

    assert response.status_code == 422
    assert scan_repository.scans == []


def test_create_scan_store_failure(
    container, scan_repository: InMemoryScanRepository
) -> None:
    scan_repository.fail = True
    client = TestClient(create_app(container))

    response = client.post(
        "/scans", json={"user_id": str(uuid4()), "barcode": BARCODE, "price": 1.0}
    )

    assert response.status_code == 500
    assert response.json() == {
        "status": "error",
        "error": "Failed to save product scan",
    }


def test_expenditure_and_trends(
    container, scan_repository: InMemoryScanRepository
) -> None:
    user_id = uuid4()
    base = datetime(2024, 3, 5, 10, 15, tzinfo=UTC)
    scan_repository.scans = [
        make_scan(user_id, base + timedelta(seconds=5), 1.00),
        make_scan(user_id, base + timedelta(seconds=20), 2.50),
        make_scan(user_id, base + timedelta(seconds=40), 3.00, category="en:eggs"),
    ]
    client = TestClient(create_app(container))

    response = client.get("/expenditure", params={"user_id": str(user_id)})

    assert response.status_code == 200
    body = response.json()
    assert body["granularity"] == "minute"
    assert len(body["buckets"]) == 1
    assert body["buckets"][0]["total"] == 6.5
    assert len(body["buckets"][0]["products"]) == 3
    assert body["stats"]["totalSpent"] == 6.5
    assert body["stats"]["highestBucket"]["amount"] == 6.5

    trends = client.get(
        "/expenditure/trends", params={"user_id": str(user_id)}
    ).json()
    assert trends["monthly"] == [{"key": "2024-03", "total": 6.5}]
    assert trends["weekly"] == [{"key": "2024-W10", "total": 6.5}]
    assert trends["byCategory"][0] == {"key": "uncategorized", "total": 3.5}


def test_expenditure_empty(container) -> None:
    client = TestClient(create_app(container))

    body = client.get("/expenditure", params={"granularity": "day"}).json()

    assert body["buckets"] == []
    assert body["stats"]["highestBucket"] == {"timestamp": None, "amount": 0.0}


def test_goals_and_budget(container) -> None:
    client = TestClient(create_app(container))
    user_id = str(uuid4())

    assert client.get(f"/users/{user_id}/goals").json() == {"goals": None}

    response = client.put(
        f"/users/{user_id}/goals",
        json={"monthly_budget": 100.0, "savings_target": 10.0},
    )
    assert response.status_code == 200
    assert response.json()["goals"]["monthlyBudget"] == 100.0

    budget = client.get(f"/users/{user_id}/budget").json()
    assert budget["spent"] == 0
    assert budget["monthlyBudget"] == 100.0
    assert budget["remaining"] == 100.0
    assert budget["percentageUsed"] == 0.0


def test_suggest(container, insight_client: FakeInsightClient) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/insights/suggest", json={"barcode": BARCODE, "portion_percentage": 100}
    )

    assert response.status_code == 200
    suggestions = response.json()["suggestions"]
    assert suggestions["recycling"] == "Rinse and recycle the bottle."
    assert "price" not in suggestions
    assert len(insight_client.prompts) == 1


def test_suggest_insufficient_info(container, off_client) -> None:
    off_client.products["12345678"] = {"product_name": "Mystery"}
    client = TestClient(create_app(container))

    response = client.post("/insights/suggest", json={"barcode": "12345678"})

    assert response.status_code == 422


def test_product_insights_roundtrip(container) -> None:
    client = TestClient(create_app(container))
    user_id = str(uuid4())

    response = client.post(
        "/insights/product",
        json={
            "user_id": user_id,
            "barcode": BARCODE,
            "insight_type": "recycling",
            "insight_text": "Rinse and recycle.",
            "product_name": "Sparkling Water",
        },
    )
    assert response.status_code == 200

    listed = client.get(
        f"/users/{user_id}/insights", params={"type": "recycling"}
    ).json()
    assert listed["count"] == 1
    assert listed["insights"][0]["insightText"] == "Rinse and recycle."

    other = client.get(f"/users/{user_id}/insights", params={"type": "price"}).json()
    assert other["count"] == 0


def test_overview_availability(
    container, insight_repository: InMemoryInsightRepository
) -> None:
    user_id = uuid4()
    created_at = datetime.now(tz=UTC) - timedelta(hours=1)
    insight_repository.overviews.append(
        OverviewInsightRecord(
            user_id=user_id,
            environmental_insight="a",
            nutritional_insight="b",
            spending_insight="c",
            created_at=created_at,
        )
    )
    client = TestClient(create_app(container))

    blocked = client.post(
        "/insights/overview/availability", json={"user_id": str(user_id)}
    ).json()
    fresh = client.post(
        "/insights/overview/availability", json={"user_id": str(uuid4())}
    ).json()

    assert blocked == {
        "canRequest": False,
        "nextAvailableTime": (created_at + timedelta(hours=12)).isoformat(),
    }
    assert fresh == {"canRequest": True, "nextAvailableTime": None}


def test_overview_availability_store_failure(
    container, insight_repository: InMemoryInsightRepository
) -> None:
    insight_repository.fail = True
    client = TestClient(create_app(container))

    response = client.post(
        "/insights/overview/availability", json={"user_id": str(uuid4())}
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to check overview availability"}


def test_overview_generation_and_cooldown(
    container,
    insight_client: FakeInsightClient,
    scan_repository: InMemoryScanRepository,
) -> None:
    user_id = uuid4()
    insight_client.text = (
        '{"environmental_insight": "Refill.", "nutritional_insight": "Balanced.", '
        '"spending_insight": "Steady."}'
    )
    scan_repository.scans.append(
        make_scan(user_id, datetime.now(tz=UTC) - timedelta(hours=3), 2.0)
    )
    client = TestClient(create_app(container))

    first = client.post("/insights/overview", json={"user_id": str(user_id)})
    second = client.post("/insights/overview", json={"user_id": str(user_id)})

    assert first.status_code == 200
    assert first.json()["insights"]["spending_insight"] == "Steady."
    assert second.status_code == 429
    assert second.json()["nextAvailableTime"] is not None


def test_overview_without_history(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/insights/overview", json={"user_id": str(uuid4())})

    assert response.status_code == 400
