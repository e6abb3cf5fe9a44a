"""
kvjobs

A durable job queue with at-least-once processing semantics, a cache-aside
response cache and a fixed-window rate limiter, all layered over a shared
key-value store.
"""

__version__ = "1.0.0"
