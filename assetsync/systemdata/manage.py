import logging

from elasticsearch import Elasticsearch

from assetsync.elastic.connection import elastic_connection
from assetsync.systemdata.mapping import system_mappings


def create_systemdata(elastic: Elasticsearch | None = None) -> list[str]:
    """
    Create the system indices that do not exist yet. Call this at startup.
    Returns the names of the created indices.
    """
    elastic = elastic or elastic_connection()
    created = []
    for index, mapping in system_mappings().items():
        if elastic.indices.exists(index=index):
            continue
        logging.info(f"Creating system index {index}")
        elastic.indices.create(index=index, mappings={"properties": mapping})
        created.append(index)
    return created


def delete_systemdata(elastic: Elasticsearch | None = None) -> None:
    """
    DANGER: removes all folders, file records, index sessions and transform indexes
    """
    elastic = elastic or elastic_connection()
    for index in system_mappings():
        logging.warning(f"Deleting system index {index}")
        elastic.options(ignore_status=[404]).indices.delete(index=index)
