from contextlib import contextmanager
from flask import current_app
from sqlalchemy import inspect
from app.extensions import db


@contextmanager
def atomic():
    """Commit everything done inside the block, or nothing."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def conditional_update(model, criteria, values) -> int:
    """UPDATE ... WHERE <criteria>; returns the number of rows changed.

    Used for every status transition that may race with another request,
    so a second writer sees zero rows instead of overwriting.
    """
    rowcount = (
        db.session.query(model)
        .filter(*criteria)
        .update(values, synchronize_session="fetch")
    )
    current_app.logger.debug(f"{model.__name__} conditional update matched {rowcount} row(s)")
    return rowcount


def missing_tables():
    """Model tables that do not exist in the connected database yet."""
    existing = set(inspect(db.engine).get_table_names())
    return sorted(name for name in db.metadata.tables if name not in existing)


def ensure_schema():
    """Create whatever tables are missing; returns their names."""
    missing = missing_tables()
    if missing:
        db.create_all()
    return missing
