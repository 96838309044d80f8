"""
Shared utilities for the access token login service.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with trace correlation and secret redaction
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- secrets_manager: Sealing and opening of provider client secrets
- base_service: FastAPI service skeleton (health, metrics, error handlers)

Any cross-service logic should live here to avoid import cycles. Do not
import from service_* packages into shared/.
"""
