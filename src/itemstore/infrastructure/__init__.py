"""Infrastructure layer - external system implementations.

This layer contains implementations for external systems:
- Persistent stores (JSON file, in-memory)
- Change watchers (watchdog, manual)

The infrastructure layer implements domain protocols and has no dependencies
on the cache or application layers.
"""
