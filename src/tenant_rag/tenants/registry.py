"""Tenant registry — quota gates and atomic usage counters."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from tenant_rag.errors import TenantNotFoundError
from tenant_rag.tenants.counters import VersionedCounter
from tenant_rag.tenants.models import Tenant, TenantUsage

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Account:
    tenant: Tenant
    reset_at: datetime
    documents: VersionedCounter = field(default_factory=VersionedCounter)
    queries: VersionedCounter = field(default_factory=VersionedCounter)
    reset_lock: threading.Lock = field(default_factory=threading.Lock)


class TenantRegistry:
    """Owns every tenant and its document / query counters.

    Parameters
    ----------
    clock:
        Returns the current UTC time (override in tests).
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._accounts: dict[str, _Account] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def register(self, tenant: Tenant) -> Tenant:
        with self._lock:
            if tenant.tenant_id in self._accounts:
                raise ValueError(f"Tenant {tenant.tenant_id!r} already registered")
            self._accounts[tenant.tenant_id] = _Account(
                tenant=tenant,
                reset_at=self._clock() + timedelta(days=tenant.quota_period_days),
            )
        logger.info("Registered tenant %s (%s, plan=%s)", tenant.tenant_id, tenant.name, tenant.plan.value)
        return tenant

    def get(self, tenant_id: str) -> Tenant:
        return self._account(tenant_id).tenant

    # -- quota gates ----------------------------------------------------------

    def can_upload_document(self, tenant_id: str) -> bool:
        account = self._account(tenant_id)
        return account.tenant.is_active and account.documents.value < account.tenant.max_documents

    def can_make_query(self, tenant_id: str) -> bool:
        """Return whether the tenant has queries left, rolling the period over if due."""
        account = self._account(tenant_id)
        self._maybe_reset_queries(account)
        return account.tenant.is_active and account.queries.value < account.tenant.max_queries_per_period

    # -- counters -------------------------------------------------------------

    def try_reserve_document(self, tenant_id: str) -> bool:
        """Take one document slot if the tenant is active and under its limit.

        The limit check and the increment are a single compare-and-swap,
        so concurrent uploads can never overshoot ``max_documents``.
        """
        account = self._account(tenant_id)
        counter = account.documents
        while True:
            seen = counter.current
            if not account.tenant.is_active or seen.value >= account.tenant.max_documents:
                return False
            if counter.compare_and_swap(seen, seen.value + 1):
                return True

    def decrement_documents(self, tenant_id: str) -> int:
        return self._account(tenant_id).documents.decrement()

    def increment_queries(self, tenant_id: str) -> int:
        return self._account(tenant_id).queries.increment()

    def usage(self, tenant_id: str) -> TenantUsage:
        account = self._account(tenant_id)
        return TenantUsage(
            tenant_id=tenant_id,
            document_count=account.documents.value,
            query_count=account.queries.value,
            max_documents=account.tenant.max_documents,
            max_queries_per_period=account.tenant.max_queries_per_period,
            reset_at=account.reset_at,
        )

    # -- internals ------------------------------------------------------------

    def _account(self, tenant_id: str) -> _Account:
        account = self._accounts.get(tenant_id)
        if account is None:
            raise TenantNotFoundError(f"Tenant {tenant_id!r} not found")
        return account

    def _maybe_reset_queries(self, account: _Account) -> None:
        now = self._clock()
        if now <= account.reset_at:
            return
        with account.reset_lock:
            if now <= account.reset_at:
                return
            account.queries.reset()
            account.reset_at = now + timedelta(days=account.tenant.quota_period_days)
        logger.info("Query quota reset for tenant %s; next reset %s", account.tenant.tenant_id, account.reset_at)
