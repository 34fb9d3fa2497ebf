"""
Transport Service package for TripBuddy.

The service answers transport searches and stores users' trips:
- Caching: per-category TTL cache in front of every search provider
- Rate limiting: token bucket guarding the external flight fare API
- Trip sync: idempotent inserts keyed by (userId, id)
- Circuit-breaking and retries for the flight fare API

Structure:
- app.main: FastAPI app, routes, and lifecycle wiring.
- app.adapters: Flight fare API client and document stores.
- app.caching: Category cache and key fingerprints.
- app.ratelimit: In-process token bucket.
- app.domain: Request models, trip repository, search service, mock providers.
"""
