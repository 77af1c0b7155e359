"""HTTP API: root router and shared dependencies."""
