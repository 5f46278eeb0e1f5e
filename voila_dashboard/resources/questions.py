"""
Voilà Dashboard - Frequent Questions Resource

This module provides the question clusters computed by the database and
the questions that belong to each cluster.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, TypeVar

from voila_dashboard.config import Limits, RpcFunctions
from voila_dashboard.exceptions import QueryError, VoilaError
from voila_dashboard.models import ClusterDetail, PaginatedList, QuestionCluster
from voila_dashboard.resources.base import BaseResource

logger = logging.getLogger("voila_dashboard.questions")

T = TypeVar("T")


class FrequentQuestionsResource(BaseResource):
    """
    Resource for the frequent questions view.

    Clusters come ordered by size from the ``get_question_clusters`` RPC
    function. Unlike the dashboard reads, failures propagate.

    Example:
        >>> clusters = client.questions.get_question_clusters()
        >>> first_page = client.questions.page(clusters, page=1)
        >>> for cluster in first_page:
        ...     print(cluster.domanda, cluster.numero_domande)
    """

    def get_question_clusters(self) -> List[QuestionCluster]:
        """
        Get every question cluster with its size and share.

        Raises:
            QueryError: If the RPC call fails
        """
        logger.debug("Fetching question clusters")
        try:
            rows = self._rpc(RpcFunctions.QUESTION_CLUSTERS)
        except VoilaError as e:
            logger.error(f"Supabase error details: {e.details}")
            raise QueryError(f"Failed to fetch question clusters: {e.message}") from e

        return [QuestionCluster.from_dict(row) for row in rows]

    def get_cluster_details(self, cluster_id: str) -> List[ClusterDetail]:
        """
        Get the questions of a cluster with the call each came from.

        Args:
            cluster_id: Cluster UUID

        Raises:
            QueryError: If the RPC call fails
        """
        logger.debug(f"Fetching cluster details for ID: {cluster_id}")
        try:
            rows = self._rpc(RpcFunctions.CLUSTER_DETAILS, {"cluster_id_param": cluster_id})
        except VoilaError as e:
            logger.error(f"Supabase error details: {e.details}")
            raise QueryError(f"Failed to fetch cluster details: {e.message}") from e

        return [ClusterDetail.from_dict(row) for row in rows]

    @staticmethod
    def page(
        items: Sequence[T],
        page: int = 1,
        page_size: int = Limits.DEFAULT_PAGE_SIZE,
    ) -> PaginatedList[T]:
        """Slice a loaded list into a 1-indexed page; out of range pages clamp."""
        total = len(items)
        last_page = max(1, -(-total // page_size))
        page = min(max(1, page), last_page)
        start = (page - 1) * page_size
        return PaginatedList(
            items=list(items[start:start + page_size]),
            total=total,
            page=page,
            page_size=page_size,
        )
