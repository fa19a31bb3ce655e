"""
Graph Service — projects the mirror's requirements and relationships into
a node/link graph for the UI.

Closure rule: every link endpoint is a node. Endpoints the requirements
table does not know get a placeholder node (name = id, status "N/A"):
unknown targets become "External/Block", unknown sources "Requirement".
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from requirements_editor.models.schemas import GraphData, GraphLink, GraphNode

logger = logging.getLogger(__name__)

EXTERNAL_TARGET_TYPE = "External/Block"
UNKNOWN_SOURCE_TYPE = "Requirement"
PLACEHOLDER_STATUS = "N/A"


def build_graph(
    requirement_rows: Iterable[dict[str, Any]],
    relationship_rows: Iterable[dict[str, Any]],
) -> GraphData:
    nodes: dict[str, GraphNode] = {}
    for row in requirement_rows:
        node_id = row.get("id")
        if not node_id or node_id in nodes:
            continue
        nodes[node_id] = GraphNode(
            id=node_id,
            name=row.get("name"),
            type=row.get("type"),
            status=row.get("status"),
        )

    links: list[GraphLink] = []
    placeholders = 0
    for row in relationship_rows:
        source, target = row.get("source_req_id"), row.get("target_id")
        if not source or not target:
            logger.warning(f"Skipping relationship with a missing endpoint: {row}")
            continue

        if target not in nodes:
            nodes[target] = _placeholder(target, EXTERNAL_TARGET_TYPE)
            placeholders += 1
        if source not in nodes:
            nodes[source] = _placeholder(source, UNKNOWN_SOURCE_TYPE)
            placeholders += 1

        links.append(GraphLink(source=source, target=target, type=row.get("relationship_type")))

    logger.debug(
        f"Projected graph: {len(nodes)} nodes ({placeholders} placeholders), {len(links)} links"
    )
    return GraphData(nodes=list(nodes.values()), links=links)


def _placeholder(node_id: str, node_type: str) -> GraphNode:
    return GraphNode(id=node_id, name=node_id, type=node_type, status=PLACEHOLDER_STATUS)


class GraphService:
    """Reads the mirror through a RequirementRepository and applies the closure rule."""

    def __init__(self, repository):
        self.repository = repository

    async def project(self) -> GraphData:
        requirement_rows = await self.repository.list_requirement_nodes()
        relationship_rows = await self.repository.list_relationships()
        return build_graph(requirement_rows, relationship_rows)
