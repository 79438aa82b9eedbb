"""Resource services.

Services implement the three resource operations, coordinating between the
domain layer (core/) and infrastructure (platform/):

- discover: ``check``
- fetch: ``in``
- publish: ``out``
"""
