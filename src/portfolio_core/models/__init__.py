"""Pydantic domain models."""

from portfolio_core.models.exposure import (
    ClassificationBreakdown,
    ClassificationResult,
    ClassificationSummaries,
    ClassificationSummary,
    ExposureBucket,
    LookThroughMeta,
    LookThroughResult,
    StalenessEntry,
)
from portfolio_core.models.lifecycle import (
    OverviewMode,
    ReconcileResult,
    Severity,
    WarningLedgerEntry,
    WarningObservation,
)
from portfolio_core.models.market import (
    ConstituentIngest,
    ConstituentIngestResult,
    ConstituentSet,
    ConstituentWeightRow,
    DailyClose,
    InstrumentInfo,
    PriceQuote,
)
from portfolio_core.models.overview import (
    AuditContributors,
    AuditHolding,
    AuditMetric,
    AuditScope,
    AuditScopeDimension,
    AuditTransaction,
    AuditWarning,
    MetricAudit,
    OverviewFilters,
    OverviewFreshness,
    OverviewSnapshot,
    OverviewTotals,
)
from portfolio_core.models.performance import PerformanceMetrics, PeriodBounds, PeriodType
from portfolio_core.models.refresh import (
    JobStatus,
    JobTrigger,
    PriceRefreshResult,
    RefreshAlertReport,
    RefreshFreshness,
    RefreshInput,
    RefreshJob,
    RefreshRunResult,
    ValuationRecomputeResult,
)
from portfolio_core.models.transaction import Transaction, TransactionDraft, TransactionType
from portfolio_core.models.valuation import (
    AssetKind,
    DataWarning,
    Holding,
    SnapshotTotals,
    ValuationSnapshot,
    WarningCode,
)

__all__ = [
    "AssetKind",
    "AuditContributors",
    "AuditHolding",
    "AuditMetric",
    "AuditScope",
    "AuditScopeDimension",
    "AuditTransaction",
    "AuditWarning",
    "ClassificationBreakdown",
    "ClassificationResult",
    "ClassificationSummaries",
    "ClassificationSummary",
    "ConstituentIngest",
    "ConstituentIngestResult",
    "ConstituentSet",
    "ConstituentWeightRow",
    "DailyClose",
    "DataWarning",
    "ExposureBucket",
    "Holding",
    "InstrumentInfo",
    "JobStatus",
    "JobTrigger",
    "LookThroughMeta",
    "LookThroughResult",
    "MetricAudit",
    "OverviewFilters",
    "OverviewFreshness",
    "OverviewMode",
    "OverviewSnapshot",
    "OverviewTotals",
    "PerformanceMetrics",
    "PeriodBounds",
    "PeriodType",
    "PriceQuote",
    "PriceRefreshResult",
    "ReconcileResult",
    "RefreshAlertReport",
    "RefreshFreshness",
    "RefreshInput",
    "RefreshJob",
    "RefreshRunResult",
    "Severity",
    "SnapshotTotals",
    "StalenessEntry",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "ValuationRecomputeResult",
    "ValuationSnapshot",
    "WarningCode",
    "WarningLedgerEntry",
    "WarningObservation",
]
