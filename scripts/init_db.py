#!/usr/bin/env python3
"""
Initialize the penny expense database.

Run this script to create the database schema. Pass a path to use a
database file other than the default.
"""
import sys

from penny.database.connection import DatabaseConfig, DatabaseManager

def main():
    """initialize the database."""

    config = DatabaseConfig(sys.argv[1]) if len(sys.argv) > 1 else DatabaseConfig()
    print(f"Initializing database at: {config.db_path}")

    with DatabaseManager(config) as db:
        db.initialize()

        with db.read() as conn:
            row = conn.execute(
                "SELECT version, description FROM schema_version ORDER BY version DESC LIMIT 1"
            ).fetchone()
            expense_count = conn.execute("SELECT COUNT(*) FROM expenses").fetchone()[0]

        if row:
            print("✓ Database initialized successfully!")
            print(f"  Schema version: {row['version']}")
            print(f"  Description: {row['description']}")
            print(f"  Expenses stored: {expense_count}")
        else:
            print("✗ Database initialization may have failed")

if __name__ == "__main__":
    main()
