"""Multi-project GraphQL hub: one schema per project, routed by alias."""

__version__ = "0.1.0"
