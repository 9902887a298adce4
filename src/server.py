"""Protean Engine runner for the ordering domain.

In production (PROTEAN_ENV=production) event processing is asynchronous:
the Engine delivers order events to the shipment booking handler, the
notification handler and the order summary projector, outside the
request that raised them.

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import asyncio

from protean.server.engine import Engine

from ordering.domain import ordering
from ordering.utils.logging import configure_logging


async def run():
    ordering.init()
    await Engine(ordering).run()


def main():
    configure_logging()
    asyncio.run(run())


if __name__ == "__main__":
    main()
