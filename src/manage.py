"""Storefront purchasing database management CLI.

Usage:
    python src/manage.py setup-db      # Create all tables
    python src/manage.py drop-db       # Drop all tables
    python src/manage.py seed-config   # Insert missing default settings
"""

import argparse
import sys


def _domain():
    from purchasing.domain import purchasing

    print("Initializing purchasing domain...")
    purchasing.init()
    return purchasing


def setup_database():
    from purchasing.utils.db import setup_db

    domain = _domain()
    print("Creating purchasing database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from purchasing.utils.db import drop_db

    domain = _domain()
    print("Dropping purchasing database schema...")
    drop_db(domain)
    print("Done.")


def seed_config():
    from purchasing.settings.management import seed_defaults

    domain = _domain()
    with domain.domain_context():
        created = seed_defaults()
    print(f"Seeded: {', '.join(created) if created else 'nothing, all defaults present'}")


def main():
    parser = argparse.ArgumentParser(description="Storefront purchasing database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed-config", help="Insert missing default configuration values")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed-config":
        seed_config()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
