"""
Voilà Dashboard - API Routes

JSON endpoints of the dashboard pages and the Vapi proxy route.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from voila_dashboard.chat.vapi_proxy import VapiProxy
from voila_dashboard.client import SupabaseClient
from voila_dashboard.config import PIPECAT_REGION, Limits
from voila_dashboard.exceptions import (
    ConfigurationError,
    ValidationError,
    VoilaError,
)
from voila_dashboard.kpi import build_kpi_report
from voila_dashboard.resources import DashboardResource, FrequentQuestionsResource
from voila_dashboard.server.dependencies import get_data_client, get_vapi_proxy, require_token

logger = logging.getLogger("voila_dashboard.server")

dashboard_router = APIRouter(prefix="/api/dashboard", tags=["dashboard"], dependencies=[Depends(require_token)])
kpi_router = APIRouter(prefix="/api", tags=["kpi"], dependencies=[Depends(require_token)])
questions_router = APIRouter(
    prefix="/api/frequent-questions",
    tags=["frequent-questions"],
    dependencies=[Depends(require_token)],
)
chat_router = APIRouter(prefix="/api", tags=["chat"])


def _call_type(values: Optional[List[str]]) -> Union[str, List[str], None]:
    if not values:
        return None
    return values[0] if len(values) == 1 else values


# =============================================================================
# Dashboard
# =============================================================================


@dashboard_router.get("/stats")
def get_stats(
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    call_type: Optional[List[str]] = Query(None),
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    """Headline stats and the daily chart."""
    return client.dashboard.get_stats(
        region=region,
        start_date=start_date,
        end_date=end_date,
        call_type=_call_type(call_type),
    ).to_dict()


@dashboard_router.get("/calls")
def get_calls(
    limit: int = Query(Limits.DEFAULT_CALL_LIMIT, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    search_query: Optional[str] = None,
    sentiment: Optional[List[str]] = Query(None),
    esito: Optional[List[str]] = Query(None),
    motivazione: Optional[List[str]] = Query(None),
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    """A page of calls, newest first."""
    return client.dashboard.get_calls(
        limit=limit,
        offset=offset,
        region=region,
        start_date=start_date,
        end_date=end_date,
        search_query=search_query,
        sentiment=sentiment,
        esito=esito,
        motivazione=motivazione,
    ).to_dict()


@dashboard_router.get("/calls/{call_id}/summary")
def get_call_summary(call_id: str, client: SupabaseClient = Depends(get_data_client)) -> Dict[str, Any]:
    return client.dashboard.get_call_summary(call_id).to_dict()


@dashboard_router.get("/regions")
def get_regions(client: SupabaseClient = Depends(get_data_client)) -> List[Dict[str, Any]]:
    regions = DashboardResource.ensure_region(client.dashboard.get_regions(), PIPECAT_REGION)
    return [region.to_dict() for region in regions]


@dashboard_router.get("/booking-count")
def get_booking_count(
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    count = client.dashboard.get_booking_count(region=region, start_date=start_date, end_date=end_date)
    return {"count": count}


@dashboard_router.get("/additional-stats")
def get_additional_stats(
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    return client.dashboard.get_additional_stats(
        region=region, start_date=start_date, end_date=end_date
    ).to_dict()


@dashboard_router.get("/outcome-trend")
def get_outcome_trend(
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    return client.dashboard.get_call_outcome_trend(
        region=region, start_date=start_date, end_date=end_date
    ).to_dict()


@dashboard_router.get("/sentiment-trend")
def get_sentiment_trend(
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    return client.dashboard.get_sentiment_trend(
        region=region, start_date=start_date, end_date=end_date
    ).to_dict()


@dashboard_router.get("/outcome-stats")
def get_outcome_stats(
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    return client.dashboard.get_call_outcome_stats(
        region=region, start_date=start_date, end_date=end_date
    ).to_dict()


# =============================================================================
# KPI
# =============================================================================


@kpi_router.get("/kpi")
def get_kpi(
    region: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    """Every chart of the KPI page."""
    return build_kpi_report(client.dashboard, region=region, start_date=start_date, end_date=end_date).to_dict()


# =============================================================================
# Frequent questions
# =============================================================================


@questions_router.get("")
def list_question_clusters(
    page: int = Query(1, ge=1),
    page_size: int = Query(Limits.DEFAULT_PAGE_SIZE, ge=1, le=100),
    client: SupabaseClient = Depends(get_data_client),
) -> Dict[str, Any]:
    clusters = client.questions.get_question_clusters()
    return FrequentQuestionsResource.page(clusters, page=page, page_size=page_size).to_dict()


@questions_router.get("/{cluster_id}")
def get_cluster_details(cluster_id: str, client: SupabaseClient = Depends(get_data_client)) -> Dict[str, Any]:
    details = client.questions.get_cluster_details(cluster_id)
    return {
        "cluster_id": cluster_id,
        "items": [detail.to_dict() for detail in details],
        "total": len(details),
    }


# =============================================================================
# Vapi proxy
# =============================================================================


class VapiChatRequest(BaseModel):
    message: Optional[str] = None
    previous_chat_id: Optional[str] = None


@chat_router.post("/vapi-chat")
async def vapi_chat(request: VapiChatRequest, proxy: VapiProxy = Depends(get_vapi_proxy)):
    """Forward a chat message to Vapi with the server's credentials."""
    try:
        reply = await proxy.chat(request.message, request.previous_chat_id)
    except ValidationError as e:
        return JSONResponse({"error": e.message}, status_code=400)
    except ConfigurationError as e:
        return JSONResponse({"error": e.message}, status_code=500)
    except VoilaError as e:
        if e.code == "UPSTREAM_ERROR":
            return JSONResponse({"error": e.message}, status_code=e.status_code)
        logger.error(f"Error in Vapi chat endpoint: {e}")
        return JSONResponse(
            {"error": e.message, "chat_id": None, "response": None, "function_called": None},
            status_code=e.status_code or 500,
        )
    return reply.to_dict()
