import asyncio
import os
import sys

# Add project root to path so we can import from backend.app
sys.path.append(os.path.join(os.path.dirname(__file__), '../../'))

from backend.app.core.database import Database


async def init_models():
    db = Database.from_settings()
    try:
        # Safe create (only creates if missing)
        await db.create_all()
        print(f"Database tables ready ({db.engine.url.render_as_string(hide_password=True)}).")
    finally:
        await db.dispose()

if __name__ == "__main__":
    asyncio.run(init_models())
