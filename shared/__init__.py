"""
Shared utilities for TripBuddy.

This package aggregates common building blocks consumed by the transport
service and the device client:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorators
- circuit_breaker: Resilient external call protection
- base_service: FastAPI service scaffolding
- cache_keys: Search fingerprints shared by server and client caches
- timestamps: ISO-8601 helpers for trip ordering

Do not import from service_transport or tripbuddy_client into shared/.
"""
