"""Core infrastructure: auth, audit, errors, logging, persistence and limits."""
