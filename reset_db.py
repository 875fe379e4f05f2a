# reset_db.py
import asyncio
from database import engine, Base
from models import message_model, session_model, survey_model, user_model, verification_model, workshop_model  # noqa: F401


async def reset():
    print("Resetting database...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    print("✅ Database reset complete.")

if __name__ == "__main__":
    asyncio.run(reset())
