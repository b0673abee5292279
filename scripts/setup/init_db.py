# scripts/setup/init_db.py
"""
Initialize the local station database. Creates all tables and seeds the
official categories. Optionally creates (or resets) an operator account so a
fresh booth can log in before the central server has ever been reached.

Usage: python scripts/setup/init_db.py
       python scripts/setup/init_db.py --admin-user admin --admin-password 1234
"""

import sys
import os
import argparse
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from porteria.config import settings
from porteria.database import build_local_engine, build_session_factory, create_tables, seed_categories
from porteria.services import auth_service


def main():
    parser = argparse.ArgumentParser(description="Initialize the station database")
    parser.add_argument("--admin-user", help="Create or reset this operator login")
    parser.add_argument("--admin-password", help="Password for --admin-user")
    parser.add_argument("--admin-name", default="Administrador")
    args = parser.parse_args()

    print("🗄️  Porteria DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    engine = build_local_engine(settings.DATABASE_URL)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except SQLAlchemyError as e:
        print(f"❌ Cannot open database: {e}")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables(engine)
    session_factory = build_session_factory(engine)
    seeded = seed_categories(session_factory)
    print(f"✅ Tables ready, {seeded} categories seeded")

    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.admin_user:
        if not args.admin_password:
            print("❌ --admin-password is required with --admin-user")
            sys.exit(1)
        db = session_factory()
        try:
            auth_service.upsert_user(db, f"local-{args.admin_user}", args.admin_user,
                                     args.admin_password, rol="admin", nombre=args.admin_name)
            db.commit()
        finally:
            db.close()
        print(f"\n👤 Operator '{args.admin_user}' ready")

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn porteria.main:app --host {settings.BACKEND_HOST} --port {settings.BACKEND_PORT}")


if __name__ == "__main__":
    main()
