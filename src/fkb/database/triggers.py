"""
PostgreSQL `updated_at` triggers.

TimestampMixin refreshes `updated_at` for every UPDATE that SQLAlchemy emits.
On PostgreSQL the same rule is also installed in the database itself, so rows
touched by ad-hoc SQL or other clients follow it too. Other dialects skip the
DDL entirely.
"""

import logging

from sqlalchemy import DDL, MetaData, event

logger = logging.getLogger(__name__)

TOUCH_FUNCTION = "update_updated_at_column"

_CREATE_FUNCTION = DDL(
    f"""
    CREATE OR REPLACE FUNCTION {TOUCH_FUNCTION}()
    RETURNS TRIGGER AS $$
    BEGIN
        NEW.updated_at = NOW();
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """
).execute_if(dialect="postgresql")

_DROP_FUNCTION = DDL(f"DROP FUNCTION IF EXISTS {TOUCH_FUNCTION}()").execute_if(dialect="postgresql")


def install_updated_at_triggers(metadata: MetaData) -> list[str]:
    """
    Attach CREATE TRIGGER DDL to every table of `metadata` that has an
    `updated_at` column. Safe to call more than once.

    Returns:
        Names of the tables that carry the trigger.
    """
    if not event.contains(metadata, "before_create", _CREATE_FUNCTION):
        event.listen(metadata, "before_create", _CREATE_FUNCTION)
        event.listen(metadata, "after_drop", _DROP_FUNCTION)

    touched = []
    for table in metadata.sorted_tables:
        if "updated_at" not in table.c:
            continue
        touched.append(table.name)
        if table.info.get("updated_at_trigger"):
            continue

        trigger = DDL(
            f"CREATE TRIGGER update_{table.name}_updated_at "
            f"BEFORE UPDATE ON {table.name} "
            f"FOR EACH ROW EXECUTE FUNCTION {TOUCH_FUNCTION}()"
        ).execute_if(dialect="postgresql")
        event.listen(table, "after_create", trigger)
        table.info["updated_at_trigger"] = True
        logger.debug("schema.trigger.attached", extra={"table": table.name})

    return touched
