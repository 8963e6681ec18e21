"""Core interfaces.

Why:
- Defines contracts (Protocol) implemented by concrete adapters.
- Inverts dependencies: services depend on abstractions, tests on fakes.
"""
