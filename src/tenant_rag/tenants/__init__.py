"""
Tenants — isolation boundary and quota bookkeeping.

Quota checks are yes/no gates consulted by callers before uploads and
queries; the counters behind them only change through atomic
compare-and-swap operations.
"""

from tenant_rag.tenants.counters import CounterValue, VersionedCounter
from tenant_rag.tenants.models import SubscriptionPlan, Tenant, TenantUsage
from tenant_rag.tenants.registry import TenantRegistry

__all__ = [
    "CounterValue",
    "SubscriptionPlan",
    "Tenant",
    "TenantRegistry",
    "TenantUsage",
    "VersionedCounter",
]
