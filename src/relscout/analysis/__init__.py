"""Analysis modules.

This package contains modules for:
- relationships: Foreign key candidate collection, validation and discovery
"""
