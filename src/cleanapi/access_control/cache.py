"""
In-memory policy cache.

Holds one bucket of documents per principal role (``Exact(<role>)``) plus the
wildcard bucket (``ANY``), built from the active documents of a PolicyStore.
A reload builds a complete new mapping and swaps the reference in one
assignment, so readers always work on a whole snapshot and never wait on a
reload. Reloads are serialized by a lock.

Evaluations that started before a swap may still decide on the previous
snapshot. Authorization state is therefore eventually consistent with the
store: a mutation is honoured by every evaluation that begins after the
reload following it has returned.
"""

import threading
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

from cleanapi.access_control.models import ANY, Exact, Pattern, PolicyDocument
from cleanapi.access_control.store import PolicyStore
from cleanapi.platform.logging import get_logger
from cleanapi.platform.metrics import POLICY_CACHE_DOCUMENTS, POLICY_CACHE_RELOADS

logger = get_logger(__name__)

Snapshot = Mapping[Pattern, Tuple[PolicyDocument, ...]]


def build_snapshot(policies: List[PolicyDocument]) -> Snapshot:
    """Bucket each document under every principal role its statements reference."""
    buckets: Dict[Pattern, List[PolicyDocument]] = {}
    for policy in policies:
        for role in policy.principal_roles():
            buckets.setdefault(role, []).append(policy)
    return MappingProxyType({role: tuple(docs) for role, docs in buckets.items()})


class PolicyCache:
    def __init__(self, store: PolicyStore):
        self.store = store
        self._snapshot: Snapshot = MappingProxyType({})
        self._load_lock = threading.Lock()
        self.loaded = False

    def load(self) -> int:
        """
        Rebuild the cache from the store's active documents.

        Returns the number of documents loaded. If the store fails, the
        current snapshot stays in place and the error propagates.
        """
        with self._load_lock:
            try:
                policies = self.store.get_active()
            except Exception as e:
                POLICY_CACHE_RELOADS.labels(result="error").inc()
                logger.error("policy_cache_load_failed", error=str(e))
                raise

            snapshot = build_snapshot(policies)
            self._snapshot = snapshot
            self.loaded = True

        POLICY_CACHE_RELOADS.labels(result="success").inc()
        POLICY_CACHE_DOCUMENTS.set(len(policies))
        logger.info("policy_cache_loaded", documents=len(policies), buckets=len(snapshot))
        return len(policies)

    def lookup(self, role: str) -> List[PolicyDocument]:
        """Documents for ``role`` followed by wildcard documents, each id once."""
        snapshot = self._snapshot

        candidates: List[PolicyDocument] = []
        seen = set()
        for bucket in (snapshot.get(Exact(role), ()), snapshot.get(ANY, ())):
            for policy in bucket:
                if policy.id in seen:
                    continue
                seen.add(policy.id)
                candidates.append(policy)
        return candidates

    def roles(self) -> List[str]:
        """Bucket keys in their principal form (``*`` for the wildcard bucket)."""
        return sorted(str(role) for role in self._snapshot.keys())

    @property
    def size(self) -> int:
        """Number of distinct documents in the current snapshot."""
        return len({policy.id for bucket in self._snapshot.values() for policy in bucket})
