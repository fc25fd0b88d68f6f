"""Metric audit trail."""

from portfolio_core.audit.service import get_metric_audit, metric_value, parse_metric, parse_scope

__all__ = ["get_metric_audit", "metric_value", "parse_metric", "parse_scope"]
