"""
Core Module
===========

Ambient infrastructure shared by the CLI and REST transports:

- Exceptions: closed error taxonomy (fallback vs. retry semantics)
- Retry: exponential backoff with jitter and retry-after hints
- Safe subprocess: async command runner with timeouts and cancellation
- Config: explicit provider settings loaded from the environment
- Logging: structured logging with context propagation

Modules are imported directly (``from git_providers.core.retry import ...``)
to keep this package free of import cycles.
"""
