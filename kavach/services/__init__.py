"""
Services layer - business logic lives here, not in routes.

- risk_classifier: report count -> risk tier
- zone_matching: point-to-zone geometry and lookup policies
- zone_aggregator: merge-on-approval and full recompute
- report_service: report lifecycle, approval triggers aggregation
- storage: report/zone store contracts and backends
"""
