from typing import Iterable

import elasticsearch.helpers
from elasticsearch import Elasticsearch

from assetsync.config import get_settings


def system_index_name(path: str) -> str:
    """
    Get the full name of one of the system indices, e.g. assetsync_system_folders
    """
    return f"{get_settings().system_index}_{path}"


def es_get(elastic: Elasticsearch, index: str, id: str) -> dict | None:
    doc = elastic.options(ignore_status=[404]).get(index=index, id=id)
    if not doc.get("found"):
        return None
    return doc["_source"]


def es_search(elastic: Elasticsearch, index: str, query: dict, size: int = 1000) -> list[tuple[str, dict]]:
    """
    Search an index, returning (id, source) pairs. Use index_scan for queries that can have many hits.
    """
    res = elastic.search(index=index, query=query, size=size)
    return [(hit["_id"], hit["_source"]) for hit in res["hits"]["hits"]]


def index_scan(
    elastic: Elasticsearch,
    index: str,
    batchsize: int = 1000,
    query: dict | None = None,
    scroll: str = "5m",
) -> Iterable[tuple[str, dict]]:
    """
    Scan an index in batches of the given size. Yields documents one by one (batching behind the scenes).
    """
    query_body = {}
    if query is not None:
        query_body["query"] = query

    for hit in elasticsearch.helpers.scan(elastic, index=index, query=query_body, scroll=scroll, size=batchsize):
        yield hit["_id"], hit["_source"]
