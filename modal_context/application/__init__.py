"""
Application layer - Use cases and services for Modal Context.

This layer contains:
- Rule store, transition validator and compliance recorder services
- The transaction coordinator (the only entry point for callers)
- Ports (interfaces for infrastructure adapters)

This layer may import from domain/ only. It must NOT import from
infrastructure/ or api/ (adapters are injected through ports).
"""
