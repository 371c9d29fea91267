"""Services layer - stateful collaborators of the search orchestrator.

- cache_service: TTL caches for results, autocomplete and analytics
- performance_monitor: rolling latency/outcome statistics and hints
- debounce: per-key request coalescing
- error_handler: exception normalization and retry bookkeeping
- saved_search_service / analytics_service: user-facing persistence and reporting
"""
