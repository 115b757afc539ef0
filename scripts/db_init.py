#!/usr/bin/env python3
"""
Database initialization script for SignalFriend.

Creates all tables, seeds the default categories and prints a health summary.
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()

from signalfriend.contracts import get_network_name
from signalfriend.config import get_config
from signalfriend.database import close_all, get_database_url, get_health_status, init_all
from signalfriend.seed import seed_categories
from signalfriend.services.webhooks import purge_processed_events


def main():
    """Initialize database, create tables and seed reference data."""
    print("=" * 60)
    print("SignalFriend Database Initialization")
    print("=" * 60)

    try:
        cfg = get_config()
        db_url = get_database_url()
        print(f"\n📊 Database: {db_url.split('@')[1] if '@' in db_url else db_url}")
        print(f"⛓️  Chain: {cfg['CHAIN_ID']} ({get_network_name(cfg['CHAIN_ID'])})")

        print("\n🔨 Creating database tables...")
        init_all(create_tables=True)
        print("✅ All tables created successfully")

        print("\n🌱 Seeding default categories...")
        created = seed_categories()
        print(f"✅ {created} categories created" if created else "✅ Categories already present")

        purged = purge_processed_events()
        if purged:
            print(f"🧹 Purged {purged} expired webhook ledger entries")

        print("\n🏥 Checking health...")
        health = get_health_status()
        print(f"  Database: {health['database']['status']}")
        print(f"  Redis: {health['redis']['status']}")

        if health["database"]["status"] != "healthy":
            print("\n⚠️  Database is not healthy. Check configuration.")
            return 1

        print("\n✅ Database initialization complete!")
        print("\n📝 Next step: gunicorn wsgi:application")
        return 0

    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        import traceback

        traceback.print_exc()
        return 1
    finally:
        close_all()


if __name__ == "__main__":
    sys.exit(main())
