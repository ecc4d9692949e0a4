# analysis/duplicates.py

import logging
from typing import Any, List
from es_dedup.models.duplicate_models import DocumentRef

logger = logging.getLogger(__name__)

AGGREGATION_NAME = 'duplicate_keys'

def find_duplicates(es, index, field='databaseId', max_terms=1000000, min_count=2,
                    mode='terms', page_size=1000) -> List[Any]:
    """
    Returns the values of `field` that occur in at least `min_count` documents
    of `index`. Order is whatever Elasticsearch returns.

    mode='terms' runs one terms aggregation capped at `max_terms` buckets.
    mode='composite' pages a composite aggregation `page_size` buckets at a
    time, for key sets too large for a single terms page.
    """
    if mode == 'terms':
        return find_duplicates_terms(es, index, field, max_terms, min_count)
    if mode == 'composite':
        return find_duplicates_composite(es, index, field, page_size, min_count)
    raise ValueError(f"Unknown aggregation mode: {mode}")

def find_duplicates_terms(es, index, field, max_terms, min_count) -> List[Any]:
    aggs = {
        AGGREGATION_NAME: {
            'terms': {
                'field': field,
                'size': max_terms,
                'min_doc_count': min_count
            }
        }
    }
    logger.debug(f"Terms aggregation on {index}: {aggs}")
    response = es.search(index=index, size=0, aggs=aggs)

    buckets = response['aggregations'][AGGREGATION_NAME]['buckets']
    return [bucket['key'] for bucket in buckets]

def find_duplicates_composite(es, index, field, page_size, min_count) -> List[Any]:
    # composite aggregations have no min_doc_count, so buckets are filtered here
    keys = []
    after_key = None
    page = 0
    while True:
        composite = {
            'size': page_size,
            'sources': [{'key': {'terms': {'field': field}}}]
        }
        if after_key:
            composite['after'] = after_key

        response = es.search(index=index, size=0, aggs={AGGREGATION_NAME: {'composite': composite}})
        result = response['aggregations'][AGGREGATION_NAME]
        buckets = result['buckets']
        page += 1

        for bucket in buckets:
            if bucket['doc_count'] >= min_count:
                keys.append(bucket['key']['key'])

        after_key = result.get('after_key')
        logger.debug(f"Composite page {page} on {index}: {len(buckets)} buckets, {len(keys)} duplicate keys so far")
        if not buckets or not after_key:
            break

    return keys

def get_documents(es, index, key, field='databaseId', size=10000) -> List[DocumentRef]:
    """
    Fetches every document in `index` whose `field` equals `key`, in the order
    Elasticsearch returns them.
    """
    response = es.search(
        index=index,
        query={'term': {field: key}},
        size=size,
        _source=False
    )
    return [DocumentRef(index=hit['_index'], id=hit['_id']) for hit in response['hits']['hits']]
