"""
Connection to the Elastic server that holds the folders, file records, index sessions and transform indexes.
The server API opens it at startup (see api.lifespan), the CLI on first use.
"""

import logging

from elasticsearch import Elasticsearch

from assetsync.config import Settings, get_settings


class ESConnectionHolder:
    active: Elasticsearch | None = None


ES_CONNECTION = ESConnectionHolder()


def elastic_connection() -> Elasticsearch:
    """
    Get the shared elasticsearch connection, connecting (and checking the server is up) on the first call
    """
    if ES_CONNECTION.active is None:
        elastic = connect_elastic()
        if not elastic.ping():
            raise ConnectionError(f"Cannot connect to elasticsearch server {get_settings().elastic_host}")
        ES_CONNECTION.active = elastic
    return ES_CONNECTION.active


def close_elastic() -> None:
    if ES_CONNECTION.active is not None:
        ES_CONNECTION.active.close()
        ES_CONNECTION.active = None


def connect_elastic(settings: Settings | None = None) -> Elasticsearch:
    """
    Create a client from the settings, without checking the connection
    """
    settings = settings or get_settings()
    logging.debug(
        f"Connecting with elasticsearch at {settings.elastic_host}, password? {'yes' if settings.elastic_password else 'no'}"
    )
    options: dict = dict(request_timeout=30, retry_on_timeout=True, max_retries=3)
    if settings.elastic_password:
        options.update(basic_auth=("elastic", settings.elastic_password), verify_certs=bool(settings.elastic_verify_ssl))
    return Elasticsearch(settings.elastic_host, **options)
