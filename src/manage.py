"""Storefront database management CLI.

Usage:
    python src/manage.py setup-db        # Create all tables
    python src/manage.py drop-db         # Drop all tables
    python src/manage.py seed-products   # Load the opening catalogue
"""

import argparse
import sys


def _domain():
    from storefront.domain import storefront

    storefront.init()
    return storefront


def setup_database():
    from storefront.utils.db import setup_db

    domain = _domain()
    print("Creating storefront database schema...")
    providers = setup_db(domain)
    if providers:
        print(f"  schema ready on: {', '.join(providers)}")
    else:
        print("  no SQL provider configured, nothing to create.")
    print("Done.")


def drop_database():
    from storefront.utils.db import drop_db

    domain = _domain()
    print("Dropping storefront database schema...")
    providers = drop_db(domain)
    if providers:
        print(f"  schema dropped on: {', '.join(providers)}")
    else:
        print("  no SQL provider configured, nothing to drop.")
    print("Done.")


def seed_catalogue():
    domain = _domain()
    from storefront.catalogue.seed import seed_products

    with domain.domain_context():
        created = seed_products()
    print(f"Seeded {len(created)} product(s).")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Storefront database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("seed-products", help="Load the opening catalogue")

    args = parser.parse_args(argv)

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "seed-products":
        seed_catalogue()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
