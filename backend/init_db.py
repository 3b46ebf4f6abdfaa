# init_db.py (in backend folder)

import argparse

from sqlalchemy import inspect

from vaultdrop.config import Settings
from vaultdrop.infra.postgres import build_engine, check_connection
from vaultdrop.models.base import Base
from vaultdrop.models.message import MessageRecord  # noqa: F401


def reset_schema(database_url: str, keep_data: bool = False):
    """Recreate the vault schema. Unread messages are lost unless keep_data is set."""
    engine = build_engine(database_url)

    if not check_connection(engine):
        raise SystemExit(f"Cannot reach {engine.url.render_as_string(hide_password=True)}")

    if not keep_data:
        print("Dropping vault tables...")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    print("Vault schema ready")

    inspector = inspect(engine)
    for table in inspector.get_table_names():
        print(f"\n{table}:")
        for col in inspector.get_columns(table):
            nullable = "" if col["nullable"] else " NOT NULL"
            print(f"  - {col['name']}: {col['type']}{nullable}")
        for index in inspector.get_indexes(table):
            unique = "unique " if index.get("unique") else ""
            print(f"  * {unique}index {index['name']} on {', '.join(index['column_names'])}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the VaultDrop tables")
    parser.add_argument("--keep-data", action="store_true", help="only create missing tables")
    args = parser.parse_args()
    reset_schema(Settings.from_env().database_url, keep_data=args.keep_data)
