"""
Aggregation endpoints — each module composes the GitHub clients, the cache
and the time-series helpers into one user-facing summary.
"""
