"""Customer schema metadata: column profiles, features and declared constraints."""

from relscout.schema.models import ColumnFeatures, ColumnProfile, DeclaredForeignKey
from relscout.schema.reader import SchemaMetadataReader, SqlAlchemySchemaReader

__all__ = [
    "ColumnFeatures",
    "ColumnProfile",
    "DeclaredForeignKey",
    "SchemaMetadataReader",
    "SqlAlchemySchemaReader",
]
