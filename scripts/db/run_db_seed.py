# scripts/db/run_db_seed.py
"""
Seed demo data and print a bearer token per role.

    alembic upgrade head
    python -m scripts.db.run_db_seed
"""

from app.db import DbManager
from app.services.v1 import issue_token
from common.config import initialize_config
from dotenv import load_dotenv
from .seed_db import seed_db


async def main():
    load_dotenv()
    config = initialize_config()

    _db_config = config.database
    if not _db_config:
        raise RuntimeError("Database configuration required")

    db_manager = DbManager.from_config(_db_config)
    await db_manager.verify_connection()

    try:
        results = await seed_db(db_manager)
    finally:
        await db_manager.dispose()

    print(f"Seeded {results['created']} new records")
    print(f"Center: {results['center'].name} ({results['center'].center_id})")
    for service in results["services"]:
        print(f"Service: {service.name} ({service.service_id})")
    for role, user in results["users"].items():
        token = issue_token(config.auth, user.user_id, role)
        print(f"{role.value:>5} {user.email}: {token}")


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
