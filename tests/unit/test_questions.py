"""Unit tests for frequent questions and token verification."""

import json

import httpx
import pytest

from voila_dashboard.exceptions import QueryError, VoilaError
from voila_dashboard.models import QuestionCluster
from voila_dashboard.resources.questions import FrequentQuestionsResource
from tests.conftest import ANON_KEY, SUPABASE_URL, pg_error, rpc_url

AUTH_URL = f"{SUPABASE_URL}/functions/v1/auth-verify"


def make_clusters(count: int):
    return [QuestionCluster(cluster_id=f"c{i}", domanda=f"Domanda {i}") for i in range(count)]


class TestFrequentQuestions:
    """Tests for FrequentQuestionsResource."""

    def test_get_question_clusters(self, client, mock_api):
        mock_api.post(rpc_url("get_question_clusters")).mock(
            return_value=httpx.Response(
                200,
                json=[
                    {"cluster_id": "c1", "domanda": "Quali sono gli orari?", "numero_domande": 12,
                     "percentuale": 40.0, "extra": "ignored"},
                ],
            )
        )

        clusters = client.questions.get_question_clusters()

        assert clusters[0].domanda == "Quali sono gli orari?"
        assert clusters[0].numero_domande == 12

    def test_get_question_clusters_failure(self, client, mock_api):
        mock_api.post(rpc_url("get_question_clusters")).mock(return_value=pg_error(400, "P0001", "boom"))

        with pytest.raises(QueryError) as exc_info:
            client.questions.get_question_clusters()

        assert exc_info.value.message == "Failed to fetch question clusters: boom"

    def test_get_cluster_details(self, client, mock_api):
        route = mock_api.post(rpc_url("get_cluster_details")).mock(
            return_value=httpx.Response(200, json=[{"domanda_specifica": "A che ora aprite?", "sentiment": "neutral"}])
        )

        details = client.questions.get_cluster_details("c1")

        assert details[0].domanda_specifica == "A che ora aprite?"
        assert json.loads(route.calls.last.request.content) == {"cluster_id_param": "c1"}

    def test_get_cluster_details_failure(self, client, mock_api):
        mock_api.post(rpc_url("get_cluster_details")).mock(return_value=httpx.Response(500))

        with pytest.raises(QueryError) as exc_info:
            client.questions.get_cluster_details("c1")

        assert exc_info.value.message.startswith("Failed to fetch cluster details")

    def test_page(self):
        page = FrequentQuestionsResource.page(make_clusters(25), page=3, page_size=10)

        assert [c.cluster_id for c in page] == ["c20", "c21", "c22", "c23", "c24"]
        assert page.total_pages == 3
        assert page.has_next is False
        assert page.has_previous is True

    def test_page_out_of_range_clamps(self):
        assert FrequentQuestionsResource.page(make_clusters(25), page=9).page == 3
        assert FrequentQuestionsResource.page(make_clusters(25), page=0).page == 1

    def test_page_empty(self):
        page = FrequentQuestionsResource.page([], page=2)

        assert page.page == 1
        assert page.items == []
        assert page.to_dict()["total_pages"] == 0


class TestAuth:
    """Tests for AuthResource.verify_token."""

    def test_valid_token(self, client, mock_api):
        route = mock_api.get(AUTH_URL).mock(return_value=httpx.Response(200, json={"valid": True}))

        assert client.auth.verify_token("user-token") is True

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer user-token"
        assert request.headers["apikey"] == ANON_KEY

    def test_rejected_token(self, client, mock_api):
        mock_api.get(AUTH_URL).mock(return_value=httpx.Response(401, json={"error": "expired"}))
        assert client.auth.verify_token("old-token") is False

    def test_empty_token(self, client, mock_api):
        route = mock_api.get(AUTH_URL)
        assert client.auth.verify_token("") is False
        assert not route.called

    def test_unreachable_verifier(self, client, mock_api):
        mock_api.get(AUTH_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(VoilaError):
            client.auth.verify_token("user-token")
