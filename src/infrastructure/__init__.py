"""Infrastructure Layer.

Adapters that perform I/O (HTTP, file system) and return domain Value Objects.
"""
