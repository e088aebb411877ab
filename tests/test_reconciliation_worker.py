import asyncio
from contextlib import contextmanager
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from loyaltyapi.config import Settings
from loyaltyapi.models.order import OrderStatus, OutboxStatus
from loyaltyapi.repositories.balance_repository import BalanceRepository
from loyaltyapi.repositories.order_repository import OrderRepository
from loyaltyapi.repositories.outbox_repository import OutboxRepository
from loyaltyapi.schemas.accrual import AccrualResponse
from loyaltyapi.schemas.order import Order
from loyaltyapi.schemas.outbox import OutboxRecord
from loyaltyapi.services.reconciliation_service import OrderReconciliationService
from loyaltyapi.services.reconciliation_worker import ReconciliationWorker


@pytest.fixture
def settings():
    return Settings(
        RECONCILE_INTERVAL_SECONDS=0.01,
        RECONCILE_BATCH_SIZE=7,
        RECONCILE_MAX_WORKERS=3,
        RECONCILE_MAX_RETRIES=4,
    )


@pytest.fixture
def session_scope(db_session):
    @contextmanager
    def scope():
        yield db_session

    return scope


class TestReconciliationWorker:
    """정산 워커 테스트"""

    def test_build_service_uses_settings(self, settings, session_scope, db_session, accrual_client):
        worker = ReconciliationWorker(accrual_client, settings, session_scope=session_scope)

        service = worker.build_service(db_session)

        assert isinstance(service, OrderReconciliationService)
        assert service.batch_size == 7
        assert service.max_workers == 3
        assert service.max_retries == 4
        assert service.accrual_client is accrual_client

    def test_run_once_reconciles_pending_orders(
        self, settings, session_scope, db_session, accrual_client
    ):
        # Given
        order = OrderRepository(db_session).create(Order.new(1, "79927398713"))
        record = OutboxRepository(db_session).create(OutboxRecord.pending(order.id))
        accrual_client.responses["79927398713"] = AccrualResponse(
            order="79927398713", status="PROCESSING"
        )
        worker = ReconciliationWorker(accrual_client, settings, session_scope=session_scope)

        # When
        asyncio.run(worker.run_once())

        # Then
        assert OrderRepository(db_session).find_by_id(order.id).status == OrderStatus.PROCESSING
        assert OutboxRepository(db_session).get_by_id(record.id).status == OutboxStatus.PROCESSED

    def test_run_ticks_until_stopped(self, settings, accrual_client):
        worker = ReconciliationWorker(accrual_client, settings)

        async def scenario():
            stop_event = asyncio.Event()
            calls = []

            async def fake_run_once():
                calls.append(1)
                if len(calls) == 3:
                    stop_event.set()

            worker.run_once = fake_run_once
            await asyncio.wait_for(worker.run(stop_event), timeout=2)
            return calls

        calls = asyncio.run(scenario())

        assert len(calls) == 3
        assert worker.running is False

    def test_tick_errors_do_not_stop_loop(self, settings, accrual_client):
        worker = ReconciliationWorker(accrual_client, settings)

        async def scenario():
            stop_event = asyncio.Event()
            calls = []

            async def flaky_run_once():
                calls.append(1)
                if len(calls) == 1:
                    raise RuntimeError("db down")
                stop_event.set()

            worker.run_once = flaky_run_once
            await asyncio.wait_for(worker.run(stop_event), timeout=2)
            return calls

        assert len(asyncio.run(scenario())) == 2

    def test_preset_stop_event_skips_ticks(self, settings, accrual_client):
        worker = ReconciliationWorker(accrual_client, settings)
        worker.run_once = AsyncMock()

        async def scenario():
            stop_event = asyncio.Event()
            stop_event.set()
            await worker.run(stop_event)

        asyncio.run(scenario())

        worker.run_once.assert_not_called()

    def test_credit_through_worker(self, settings, session_scope, db_session, accrual_client):
        order = OrderRepository(db_session).create(Order.new(5, "12345678903"))
        OutboxRepository(db_session).create(OutboxRecord.pending(order.id))
        accrual_client.responses["12345678903"] = AccrualResponse(
            order="12345678903", status="PROCESSED", accrual=Decimal("729.98")
        )
        worker = ReconciliationWorker(accrual_client, settings, session_scope=session_scope)

        asyncio.run(worker.run_once())
        asyncio.run(worker.run_once())

        # 두 번째 tick에서는 처리할 아웃박스가 없으므로 중복 적립 없음
        assert BalanceRepository(db_session).get_by_user(5).current == Decimal("729.98")
        assert accrual_client.calls == ["12345678903"]
