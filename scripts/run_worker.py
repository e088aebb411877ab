"""
정산 워커 단독 실행

HTTP 서버 없이 RECONCILE_INTERVAL_SECONDS 주기로 정산을 수행합니다.
SIGINT/SIGTERM을 받으면 진행 중인 tick을 마치고 종료합니다.
"""

import asyncio
import logging
import os
import signal
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

from loyaltyapi.containers import Container
from loyaltyapi.logging_config import setup_logging

logger = logging.getLogger("loyaltyapi.worker")


async def main() -> None:
    container = Container()
    settings = container.config()
    setup_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    worker = container.reconciliation_worker()
    try:
        await worker.run(stop_event)
    finally:
        await container.accrual_client().aclose()
        logger.info("Accrual client closed")


if __name__ == "__main__":
    load_dotenv("loyaltyapi/.env")
    asyncio.run(main())
