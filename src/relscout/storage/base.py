"""Declarative base and schema creation for the metadata store."""

from sqlalchemy import MetaData
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase

# Stable constraint names on both SQLite and PostgreSQL
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base for schema metadata and discovery result tables."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


def import_all_models() -> None:
    """Register every table on Base.metadata."""
    from relscout.analysis.relationships import db_models as _relationships_models  # noqa: F401
    from relscout.schema import db_models as _schema_models  # noqa: F401


def init_database(engine: Engine) -> None:
    """Create missing tables. Existing tables are left untouched."""
    import_all_models()
    with engine.begin() as conn:
        Base.metadata.create_all(conn)
