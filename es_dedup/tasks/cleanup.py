# tasks/cleanup.py

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import List, Tuple
from elasticsearch.helpers import bulk
from es_dedup.analysis.duplicates import find_duplicates, get_documents
from es_dedup.models.duplicate_models import (
    DeleteResult, DocumentRef, FailedDelete, GroupResult, IndexSummary, RunSummary
)

logger = logging.getLogger(__name__)

def delete_documents(es, docs: List[DocumentRef], dry_run=False) -> DeleteResult:
    """
    Deletes the given documents with a single bulk request.

    Item-level failures do not raise; they are logged once and returned in
    DeleteResult.failed. A rejected request raises.
    """
    if not docs:
        return DeleteResult()

    if dry_run:
        logger.info(f"Dry run, would delete {len(docs)} documents: {', '.join(doc.id for doc in docs)}")
        return DeleteResult(requested=len(docs))

    actions = [{"_op_type": "delete", "_index": doc.index, "_id": doc.id} for doc in docs]

    # one request for the whole group, nothing is retried
    success, errors = bulk(es, actions, chunk_size=len(actions), raise_on_error=False, max_retries=0)

    failed = []
    for item in errors:
        info = next(iter(item.values()))
        failed.append(FailedDelete(
            index=info.get('_index'),
            id=info.get('_id'),
            status=info.get('status'),
            error=info.get('error', info.get('result'))
        ))

    result = DeleteResult(requested=len(docs), deleted=success, failed=failed)
    if failed:
        failed_ids = ', '.join(f"{failure.index}/{failure.id}" for failure in failed)
        logger.error(f"Error deleting documents: {len(failed)} of {len(docs)} failed ({failed_ids})")
    else:
        logger.info(f"Deleted {success} documents.")
    return result

def select_survivor(docs: List[DocumentRef], keep='first') -> Tuple[DocumentRef, List[DocumentRef]]:
    """
    Splits a duplicate group into the document to keep and the ones to delete.

    'first' keeps whatever Elasticsearch returned first, which is not stable
    across reruns. 'lowest_id' keeps the smallest document id.
    """
    if keep == 'first':
        return docs[0], list(docs[1:])
    if keep == 'lowest_id':
        kept = min(docs, key=lambda doc: doc.id)
        return kept, [doc for doc in docs if doc is not kept]
    raise ValueError(f"Unknown keep policy: {keep}")

def remove_duplicates_from_index(es, index, settings, stop=None) -> IndexSummary:
    field = settings.key_field
    duplicate_keys = find_duplicates(
        es, index,
        field=field,
        max_terms=settings.max_terms,
        mode=settings.aggregation,
        page_size=settings.page_size
    )
    summary = IndexSummary(index=index, duplicate_keys=len(duplicate_keys))
    logger.info(f"Found {len(duplicate_keys)} duplicated {field} values in index {index}")

    for key in duplicate_keys:
        # set when another index failed, see remove_duplicates_from_indices
        if stop is not None and stop.is_set():
            logger.warning(f"Stopping index {index} early, another index failed")
            break

        docs = get_documents(es, index, key, field=field, size=settings.fetch_size)
        if len(docs) >= settings.fetch_size:
            logger.warning(
                f"{field} {key} in index {index} has at least {len(docs)} documents, only the first "
                f"{settings.fetch_size} are handled in this run, rerun to remove the rest"
            )

        # the aggregation may be stale by the time the group is fetched
        if len(docs) <= 1:
            logger.debug(f"Skipping {field} {key} in index {index}, {len(docs)} documents left")
            continue

        kept, to_delete = select_survivor(docs, settings.keep)
        result = delete_documents(es, to_delete, dry_run=settings.dry_run)
        summary.groups.append(GroupResult(index=index, key=key, kept=kept, deleted=to_delete, result=result))

        verb = "Would delete" if settings.dry_run else "Deleted"
        count = len(to_delete) if settings.dry_run else result.deleted
        logger.info(f"{verb} {count} duplicates for {field} {key} in index {index}, kept document ID {kept.id}.")

    logger.info(
        f"Finished index {index}: {len(summary.groups)} groups, "
        f"{summary.documents_deleted} documents deleted, {len(summary.failed)} failed"
    )
    return summary

def run_indices_in_parallel(es, settings) -> List[IndexSummary]:
    """
    Cleans the configured indices on a thread pool. On the first failure no
    further index is started, running ones stop before their next group, and
    the error is re-raised.
    """
    stop = threading.Event()

    def clean_index(index):
        if stop.is_set():
            logger.warning(f"Skipping index {index}, another index failed")
            return None
        try:
            return remove_duplicates_from_index(es, index, settings, stop=stop)
        except Exception:
            stop.set()
            raise

    with ThreadPoolExecutor(max_workers=settings.workers) as executor:
        futures = [executor.submit(clean_index, index) for index in settings.indices]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        failed = [future for future in futures if future in done and future.exception() is not None]
        if failed:
            stop.set()
            for future in pending:
                future.cancel()
            # leaving the with block waits for indices that were already running
            raise failed[0].exception()

    return [future.result() for future in futures]

def remove_duplicates_from_indices(es, settings) -> RunSummary:
    """
    Removes duplicates from every configured index. Indices run one after
    another unless settings.workers is above 1. The first error aborts the run.
    """
    run = RunSummary()

    if settings.workers <= 1 or len(settings.indices) <= 1:
        for index in settings.indices:
            run.indices.append(remove_duplicates_from_index(es, index, settings))
    else:
        run.indices.extend(run_indices_in_parallel(es, settings))

    logger.info(
        f"Done: {run.documents_deleted} duplicate documents deleted across {len(run.indices)} indices, "
        f"{len(run.failed)} deletions failed"
    )
    return run
