"""Tenant domain models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionPlan(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class Tenant(BaseModel):
    """An isolated customer account owning documents, embeddings and quotas.

    Attributes
    ----------
    max_documents:
        Active documents the tenant may hold.
    max_queries_per_period:
        Queries allowed before the quota period resets.
    quota_period_days:
        Length of the query quota period.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    plan: SubscriptionPlan = SubscriptionPlan.FREE
    max_documents: int = Field(default=10, ge=0)
    max_queries_per_period: int = Field(default=1000, ge=0)
    quota_period_days: int = Field(default=30, gt=0)
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TenantUsage(BaseModel):
    """Point-in-time view of a tenant's counters."""

    tenant_id: str
    document_count: int
    query_count: int
    max_documents: int
    max_queries_per_period: int
    reset_at: datetime
