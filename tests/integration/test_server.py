"""Integration tests for the dashboard API server."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from voila_dashboard.chat.vapi_proxy import VapiProxy, VapiReply
from voila_dashboard.exceptions import NotFoundError, ValidationError, VoilaError
from voila_dashboard.models import (
    AdditionalStats,
    CallListResponse,
    CallOutcomeStats,
    ChartPoint,
    ClusterDetail,
    DashboardStats,
    Pagination,
    QuestionCluster,
    Region,
    SentimentStat,
    TrendResponse,
)
from voila_dashboard.server.app import create_app
from voila_dashboard.server.dependencies import get_data_client, get_vapi_proxy


@pytest.fixture
def data_client():
    """Create a mock data client."""
    client = MagicMock()
    client.auth.verify_token.return_value = True
    return client


@pytest.fixture
def vapi_proxy():
    proxy = MagicMock(spec=VapiProxy)
    proxy.chat = AsyncMock()
    return proxy


def build_client(settings, data_client, vapi_proxy) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[get_data_client] = lambda: data_client
    app.dependency_overrides[get_vapi_proxy] = lambda: vapi_proxy
    return TestClient(app)


@pytest.fixture
def api(settings, data_client, vapi_proxy):
    """Create a test client with auth disabled."""
    return build_client(settings, data_client, vapi_proxy)


@pytest.fixture
def secured_api(settings, data_client, vapi_proxy):
    """Create a test client that verifies bearer tokens."""
    settings.enforce_auth = True
    return build_client(settings, data_client, vapi_proxy)


class TestHealth:
    """Tests for the health endpoint."""

    def test_health(self, api):
        response = api.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["chat_provider"] == "pipecat"


class TestDashboardRoutes:
    """Tests for the dashboard endpoints."""

    def test_stats(self, api, data_client):
        data_client.dashboard.get_stats.return_value = DashboardStats(
            total_calls=3,
            total_minutes=3,
            total_revenue=1.08,
            chart_data=[ChartPoint(date="2024-05-01", calls=3, minutes=3, revenue=1.08)],
        )

        response = api.get("/api/dashboard/stats", params={"region": "Lombardia", "call_type": "booking"})

        assert response.status_code == 200
        assert response.json()["total_calls"] == 3
        assert response.json()["chart_data"][0]["date"] == "2024-05-01"
        data_client.dashboard.get_stats.assert_called_once_with(
            region="Lombardia", start_date=None, end_date=None, call_type="booking"
        )

    def test_stats_several_call_types(self, api, data_client):
        data_client.dashboard.get_stats.return_value = DashboardStats()

        api.get("/api/dashboard/stats?call_type=booking&call_type=booking_incomplete")

        kwargs = data_client.dashboard.get_stats.call_args.kwargs
        assert kwargs["call_type"] == ["booking", "booking_incomplete"]

    def test_calls(self, api, data_client):
        data_client.dashboard.get_calls.return_value = CallListResponse(
            calls=[],
            pagination=Pagination(
                total_calls=0, total_pages=0, current_page=1,
                has_next=False, has_previous=False, limit=50, offset=0,
            ),
        )

        response = api.get("/api/dashboard/calls?limit=50&sentiment=negative&sentiment=neutral")

        assert response.status_code == 200
        assert response.json()["pagination"]["limit"] == 50
        kwargs = data_client.dashboard.get_calls.call_args.kwargs
        assert kwargs["sentiment"] == ["negative", "neutral"]
        assert kwargs["esito"] is None

    def test_calls_limit_validation(self, api):
        assert api.get("/api/dashboard/calls?limit=0").status_code == 422

    def test_summary_not_found(self, api, data_client):
        data_client.dashboard.get_call_summary.side_effect = NotFoundError(
            "Chiamata non trovata", resource_type="call"
        )

        response = api.get("/api/dashboard/calls/missing/summary")

        assert response.status_code == 404
        assert response.json() == {"detail": "Chiamata non trovata", "code": "NOT_FOUND"}

    def test_regions_always_offer_pipecat_region(self, api, data_client):
        data_client.dashboard.get_regions.return_value = [
            Region("All Region", "All Region"),
            Region("Lombardia", "Lombardia"),
        ]

        response = api.get("/api/dashboard/regions")

        assert [r["value"] for r in response.json()] == ["All Region", "Lombardia", "Piemonte"]

    def test_booking_count(self, api, data_client):
        data_client.dashboard.get_booking_count.return_value = 4

        response = api.get("/api/dashboard/booking-count?region=Piemonte")

        assert response.json() == {"count": 4}

    def test_trends(self, api, data_client):
        data_client.dashboard.get_call_outcome_trend.return_value = TrendResponse(field_name="esito_chiamata")
        data_client.dashboard.get_sentiment_trend.return_value = TrendResponse(field_name="sentiment")

        assert api.get("/api/dashboard/outcome-trend").json() == {"data": [], "total_entries": 0}
        assert api.get("/api/dashboard/sentiment-trend").json() == {"data": [], "total_entries": 0}


class TestKpiRoute:
    """Tests for the KPI endpoint."""

    def test_kpi(self, api, data_client):
        data_client.dashboard.get_additional_stats.return_value = AdditionalStats(
            sentiment_stats=[SentimentStat("positive", 2)]
        )
        data_client.dashboard.get_call_outcome_trend.return_value = TrendResponse(field_name="esito_chiamata")
        data_client.dashboard.get_sentiment_trend.return_value = TrendResponse(field_name="sentiment")
        data_client.dashboard.get_call_outcome_stats.return_value = CallOutcomeStats()

        response = api.get("/api/kpi?region=Lombardia")

        assert response.status_code == 200
        data = response.json()
        assert data["sentiment"] == [{"label": "positive", "count": 2, "color": "#10b981"}]
        assert len(data["motivations"]) == 4


class TestFrequentQuestionsRoutes:
    """Tests for the frequent questions endpoints."""

    def test_list(self, api, data_client):
        data_client.questions.get_question_clusters.return_value = [
            QuestionCluster(cluster_id=f"c{i}", domanda=f"Domanda {i}") for i in range(12)
        ]

        response = api.get("/api/frequent-questions?page=2")

        data = response.json()
        assert data["page"] == 2
        assert data["total"] == 12
        assert [item["cluster_id"] for item in data["items"]] == ["c10", "c11"]

    def test_details(self, api, data_client):
        data_client.questions.get_cluster_details.return_value = [ClusterDetail(domanda_specifica="Orari?")]

        response = api.get("/api/frequent-questions/c1")

        data = response.json()
        assert data["cluster_id"] == "c1"
        assert data["total"] == 1
        assert data["items"][0]["domanda_specifica"] == "Orari?"


class TestVapiChatRoute:
    """Tests for the Vapi proxy endpoint."""

    def test_success(self, api, vapi_proxy):
        vapi_proxy.chat.return_value = VapiReply(chat_id="chat_1", response="Ciao!", function_called="RAG")

        response = api.post("/api/vapi-chat", json={"message": "Ciao", "previous_chat_id": None})

        assert response.status_code == 200
        assert response.json() == {"chat_id": "chat_1", "response": "Ciao!", "function_called": "RAG"}
        vapi_proxy.chat.assert_awaited_once_with("Ciao", None)

    def test_blank_message(self, api, vapi_proxy):
        vapi_proxy.chat.side_effect = ValidationError("Message is required")

        response = api.post("/api/vapi-chat", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}

    def test_missing_configuration(self, settings, data_client):
        unconfigured = VapiProxy(api_key=None, assistant_id=None, chat_url=None)
        api = build_client(settings, data_client, unconfigured)

        response = api.post("/api/vapi-chat", json={"message": "Ciao"})

        assert response.status_code == 500
        assert response.json() == {"error": "Server configuration error"}

    def test_upstream_status_passthrough(self, api, vapi_proxy):
        vapi_proxy.chat.side_effect = VoilaError("Vapi API returned 401", code="UPSTREAM_ERROR", status_code=401)

        response = api.post("/api/vapi-chat", json={"message": "Ciao"})

        assert response.status_code == 401
        assert response.json() == {"error": "Vapi API returned 401"}

    def test_unexpected_error(self, api, vapi_proxy):
        vapi_proxy.chat.side_effect = VoilaError("Vapi request failed", status_code=502)

        response = api.post("/api/vapi-chat", json={"message": "Ciao"})

        assert response.status_code == 502
        assert response.json()["chat_id"] is None


class TestAuthentication:
    """Tests for bearer token enforcement."""

    def test_missing_token(self, secured_api):
        response = secured_api.get("/api/dashboard/booking-count")
        assert response.status_code == 401
        assert response.json()["detail"] == "Authentication required"

    def test_invalid_token(self, secured_api, data_client):
        data_client.auth.verify_token.return_value = False

        response = secured_api.get(
            "/api/dashboard/booking-count", headers={"Authorization": "Bearer expired"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid or expired token"

    def test_verifier_unreachable(self, secured_api, data_client):
        data_client.auth.verify_token.side_effect = VoilaError("Request failed")

        response = secured_api.get(
            "/api/dashboard/booking-count", headers={"Authorization": "Bearer token"}
        )

        assert response.status_code == 503

    def test_valid_token(self, secured_api, data_client):
        data_client.dashboard.get_booking_count.return_value = 2

        response = secured_api.get(
            "/api/dashboard/booking-count", headers={"Authorization": "Bearer good"}
        )

        assert response.status_code == 200
        data_client.auth.verify_token.assert_called_once_with("good")

    def test_chat_proxy_is_public(self, secured_api, vapi_proxy):
        vapi_proxy.chat.return_value = VapiReply(chat_id=None, response="Ciao")

        assert secured_api.post("/api/vapi-chat", json={"message": "Ciao"}).status_code == 200
