# utils/es_utils.py

from elasticsearch import Elasticsearch

def build_client(settings) -> Elasticsearch:
    """
    Creates the Elasticsearch client. Elastic Cloud is used when a cloud_id is
    configured, otherwise the plain hosts list.
    """
    basic_auth = (settings.username, settings.password or '') if settings.username else None

    if settings.cloud_id:
        return Elasticsearch(
            cloud_id=settings.cloud_id,
            basic_auth=basic_auth,
            request_timeout=settings.request_timeout
        )

    return Elasticsearch(
        settings.hosts,
        basic_auth=basic_auth,
        request_timeout=settings.request_timeout
    )
