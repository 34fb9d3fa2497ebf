"""
Rate limiting package for the Transport Service.

Holds the in-process token bucket that bounds how often a client can
reach the external flight fare API.
"""

from .token_bucket import TokenBucketRateLimiter, get_client_ip

__all__ = ["TokenBucketRateLimiter", "get_client_ip"]
