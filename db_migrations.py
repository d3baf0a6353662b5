import logging
import traceback
from sqlalchemy import inspect, text

# Upgrade scaffolding: db.create_all() never alters an existing table, so a database
# created from an earlier schema revision gets these columns here.
# (table, column, DDL type with default)
REQUIRED_COLUMNS = [
    ('semester', 'is_locked', 'BOOLEAN DEFAULT 0 NOT NULL'),
    ('co_attainment', 'config_version', 'INTEGER'),
    ('po_attainment', 'config_version', 'INTEGER'),
    ('po_attainment', 'semester_id', 'INTEGER'),
    ('po_attainment', 'level', "VARCHAR(10) DEFAULT 'LEVEL_0' NOT NULL"),
]

def add_missing_columns(engine, required_columns=None):
    """
    Add any required column missing from an existing table.
    Returns the list of "table.column" names that were added.
    """
    inspector = inspect(engine)
    table_names = inspector.get_table_names()
    added = []

    for table, column, ddl in (required_columns or REQUIRED_COLUMNS):
        if table not in table_names:
            logging.warning(f"{table} table not found. It will be created when the app runs.")
            continue

        columns = [c['name'] for c in inspector.get_columns(table)]
        if column in columns:
            logging.info(f"{column} column already exists in {table} table")
            continue

        logging.info(f"Adding {column} column to {table} table")
        with engine.begin() as connection:
            connection.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))
        added.append(f"{table}.{column}")
        logging.info(f"Successfully added {column} column to {table} table")

    return added

def check_and_update_database(app):
    """
    Check and update the database schema if necessary.
    This function runs at app startup to handle migrations for new columns.
    """
    logging.info("Checking database schema for required columns...")

    try:
        with app.app_context():
            from models import db
            engine = db.engine
            added = add_missing_columns(engine)

            if added:
                # Log the migration
                try:
                    with engine.begin() as connection:
                        connection.execute(text(
                            "INSERT INTO log (action, description, timestamp) "
                            "VALUES ('MIGRATION_ADD_COLUMNS', :description, CURRENT_TIMESTAMP)"
                        ), {"description": f"Added columns: {', '.join(added)}"})
                    logging.info("Migration logged successfully")
                except Exception as log_e:
                    logging.warning(f"Could not log migration: {log_e}")

        return True

    except Exception as e:
        error_traceback = traceback.format_exc()
        logging.error(f"Error checking or updating database schema: {str(e)}\n{error_traceback}")
        return False
