"""
Shared utilities for the offline access layer.

This package aggregates common building blocks consumed by the sync service:

- config: Client configuration via pydantic-settings
- logging: Structured logging with site/request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorators for transport calls
- circuit_breaker: Resilient remote call protection
- base_service: FastAPI scaffolding for the local control surface

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
