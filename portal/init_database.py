import asyncio
import logging

from portal.db import engine
from portal.init_db import init_models
from portal.settings import settings


async def init():
    await init_models(engine)
    await engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    asyncio.run(init())
