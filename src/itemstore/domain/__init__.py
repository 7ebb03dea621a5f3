"""Domain layer - types, protocols and exceptions with no external dependencies.

All other layers depend on the domain layer; it depends on nothing else in
the package.
"""
