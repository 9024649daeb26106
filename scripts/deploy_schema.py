#!/usr/bin/env python
# ============================================================================
# SCHEMA DEPLOYMENT SCRIPT
# ============================================================================
# EPOCH: 1 - WORKFLOW ORCHESTRATION
# PURPOSE: Deploy studio schema to PostgreSQL using PydanticToSQL
# USAGE:
#   python scripts/deploy_schema.py --dry-run    # Preview SQL
#   python scripts/deploy_schema.py              # Execute deployment
#   python scripts/deploy_schema.py --status     # Check current status
# ============================================================================

import sys
import os
import argparse

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import psycopg

from core.config import get_defaults
from core.schema import PydanticToSQL
from repositories.database import get_connection_string, _safe_conninfo


def print_status(conn, schema: str) -> None:
    """Print the tables and enum types currently installed in the schema."""
    with conn.cursor() as cur:
        cur.execute(
            "SELECT EXISTS (SELECT 1 FROM information_schema.schemata WHERE schema_name = %s)",
            (schema,),
        )
        exists = cur.fetchone()[0]
        print(f"Schema exists: {exists}")
        if not exists:
            return

        cur.execute(
            "SELECT table_name, COUNT(*) FROM information_schema.columns "
            "WHERE table_schema = %s GROUP BY table_name ORDER BY table_name",
            (schema,),
        )
        tables = cur.fetchall()
        print(f"\nTables ({len(tables)}):")
        for table, columns in tables:
            print(f"  - {schema}.{table} ({columns} columns)")

        cur.execute(
            "SELECT t.typname FROM pg_type t JOIN pg_namespace n ON n.oid = t.typnamespace "
            "WHERE n.nspname = %s AND t.typtype = 'e' ORDER BY t.typname",
            (schema,),
        )
        enum_types = [row[0] for row in cur.fetchall()]
        print(f"\nEnum types ({len(enum_types)}):")
        for enum_type in enum_types:
            print(f"  - {enum_type}")


def main():
    parser = argparse.ArgumentParser(
        description="Deploy studio schema to PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/deploy_schema.py --dry-run     # Preview DDL without executing
  python scripts/deploy_schema.py               # Deploy schema
  python scripts/deploy_schema.py --status      # Check current installation

Environment Variables:
  DATABASE_URL          Full PostgreSQL connection string
  POSTGRES_HOST         Database host (default: localhost)
  POSTGRES_DB           Database name (default: postgres)
  POSTGRES_USER         Database user (default: postgres)
  POSTGRES_PASSWORD     Database password
  POSTGRES_PORT         Database port (default: 5432)
  POSTGRES_SSLMODE      SSL mode (default: require)
  STUDIO_DB_SCHEMA      Target schema (default: studio)
        """
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print DDL without executing"
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Check current installation status"
    )
    parser.add_argument(
        "--connection",
        type=str,
        help="PostgreSQL connection string (overrides environment)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    args = parser.parse_args()

    from core.logging import configure_logging
    configure_logging(level="DEBUG" if args.verbose else "INFO")

    schema = get_defaults().database.schema
    conninfo = args.connection or get_connection_string()

    print("=" * 70)
    print("STUDIO WORKFLOW CORE - Schema Deployment")
    print("=" * 70)
    print(f"Target: {_safe_conninfo(conninfo)}")
    print(f"Schema: {schema}")
    print("=" * 70)

    with psycopg.connect(conninfo) as conn:
        if args.status:
            print("\n[STATUS CHECK]\n")
            print_status(conn, schema)
            print("\n" + "=" * 70)
            return

        print(f"\nMode: {'DRY RUN' if args.dry_run else 'EXECUTE'}\n")
        generator = PydanticToSQL(schema_name=schema)

        if args.dry_run and args.verbose:
            for stmt in generator.generate_all():
                print(stmt.as_string(conn))
                print()

        try:
            count = generator.execute(conn, dry_run=args.dry_run)
        except psycopg.Error as e:
            print(f"Deployment failed: {e}")
            sys.exit(1)

    print("\n" + "=" * 70)
    print(f"Deployment {'previewed' if args.dry_run else 'completed'}: {count} statements")
    print("=" * 70)


if __name__ == "__main__":
    main()
