"""Metadata store schema."""

from relscout.storage.base import NAMING_CONVENTION, Base, import_all_models, init_database

__all__ = ["Base", "NAMING_CONVENTION", "import_all_models", "init_database"]
