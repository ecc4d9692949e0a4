"""Shared fixtures: an in-memory stand-in for the Elasticsearch client."""
import threading
import pytest
from es_dedup.config import Settings
from es_dedup.tasks import cleanup


class FakeElasticsearch:
    """Answers the terms/composite aggregations and term queries the job sends."""

    def __init__(self):
        self.indices = {}
        self.search_calls = []
        self.bulk_calls = []
        # ids whose delete should come back as an item-level failure
        self.failing_ids = set()
        # indices whose searches raise, like a missing or broken index
        self.failing_indices = set()
        # indices whose searches wait until a failing index has raised
        self.wait_for_failure = set()
        self.failure_raised = threading.Event()

    def add(self, index, doc_id, **source):
        self.indices.setdefault(index, []).append({"_index": index, "_id": doc_id, "_source": source})

    def ids(self, index):
        return [doc["_id"] for doc in self.indices.get(index, [])]

    def search(self, index, size=10, aggs=None, query=None, _source=True):
        self.search_calls.append({"index": index, "size": size, "aggs": aggs, "query": query})
        if index in self.wait_for_failure:
            self.failure_raised.wait(timeout=5)
        if index in self.failing_indices:
            self.failure_raised.set()
            raise RuntimeError(f"search_phase_execution_exception on {index}")
        docs = self.indices.get(index, [])

        if aggs:
            name, agg = next(iter(aggs.items()))
            if "terms" in agg:
                return {"aggregations": {name: {"buckets": self._terms(docs, agg["terms"])}}}
            return {"aggregations": {name: self._composite(docs, agg["composite"])}}

        field, value = next(iter(query["term"].items()))
        hits = [
            {"_index": doc["_index"], "_id": doc["_id"]}
            for doc in docs if doc["_source"].get(field) == value
        ]
        return {"hits": {"hits": hits[:size]}}

    def _counts(self, docs, field):
        counts = {}
        for doc in docs:
            value = doc["_source"].get(field)
            if value is not None:
                counts[value] = counts.get(value, 0) + 1
        return counts

    def _terms(self, docs, terms):
        counts = self._counts(docs, terms["field"])
        buckets = [
            {"key": key, "doc_count": count}
            for key, count in counts.items() if count >= terms.get("min_doc_count", 1)
        ]
        buckets.sort(key=lambda bucket: -bucket["doc_count"])
        return buckets[:terms["size"]]

    def _composite(self, docs, composite):
        field = composite["sources"][0]["key"]["terms"]["field"]
        counts = self._counts(docs, field)
        keys = sorted(counts)
        if "after" in composite:
            keys = [key for key in keys if key > composite["after"]["key"]]
        page = keys[:composite["size"]]
        result = {"buckets": [{"key": {"key": key}, "doc_count": counts[key]} for key in page]}
        if page:
            result["after_key"] = {"key": page[-1]}
        return result

    def apply_bulk(self, actions):
        self.bulk_calls.append(list(actions))
        success, errors = 0, []
        for action in actions:
            index, doc_id = action["_index"], action["_id"]
            if doc_id in self.failing_ids:
                errors.append({"delete": {
                    "_index": index, "_id": doc_id, "status": 409,
                    "error": {"type": "version_conflict_engine_exception"}
                }})
                continue
            before = len(self.indices.get(index, []))
            self.indices[index] = [doc for doc in self.indices.get(index, []) if doc["_id"] != doc_id]
            if len(self.indices[index]) < before:
                success += 1
            else:
                errors.append({"delete": {"_index": index, "_id": doc_id, "status": 404, "result": "not_found"}})
        return success, errors


@pytest.fixture
def es(monkeypatch):
    client = FakeElasticsearch()

    def fake_bulk(es_client, actions, **kwargs):
        assert kwargs.get("raise_on_error") is False
        return es_client.apply_bulk(actions)

    monkeypatch.setattr(cleanup, "bulk", fake_bulk)
    return client


@pytest.fixture
def settings():
    return Settings(indices=["A"])
