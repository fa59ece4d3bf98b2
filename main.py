# main.py
from __future__ import annotations

import asyncio
import os

from hypercorn.asyncio import serve
from hypercorn.config import Config as HyperConfig
from workline import create_app


async def main():
    app = await create_app()

    cfg = HyperConfig()
    cfg.bind = [f"{os.getenv('HOST', '0.0.0.0')}:{os.getenv('PORT', '8000')}"]

    await serve(app, cfg)


if __name__ == "__main__":
    asyncio.run(main())
