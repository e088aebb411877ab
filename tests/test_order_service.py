from unittest.mock import Mock

import pytest

from loyaltyapi.core.exceptions import (
    DuplicateOrderNumberError,
    InvalidOrderNumberError,
    OrderNumberConflictError,
)
from loyaltyapi.models.order import OrderStatus, OutboxStatus
from loyaltyapi.schemas.order import Order, UploadStatus
from loyaltyapi.services.order_service import OrderService

VALID_NUMBER = "79927398713"


@pytest.fixture
def order_service(order_repo, unit_of_work):
    return OrderService(order_repo=order_repo, unit_of_work=unit_of_work)


class TestUploadOrder:
    """주문 업로드 테스트"""

    def test_accepts_new_order_with_outbox(self, order_service, store, unit_of_work):
        # When
        result = order_service.upload_order(1, VALID_NUMBER)

        # Then
        assert result.status == UploadStatus.ACCEPTED
        assert len(store.orders) == 1
        order = next(iter(store.orders.values()))
        assert order.user_id == 1
        assert order.status == OrderStatus.NEW
        assert order.accrual is None

        assert len(store.outbox) == 1
        record = next(iter(store.outbox.values()))
        assert record.order_id == order.id
        assert record.status == OutboxStatus.PENDING
        assert record.retries == 0
        assert unit_of_work.commits == 1

    def test_rejects_invalid_checksum(self, order_service, store):
        with pytest.raises(InvalidOrderNumberError):
            order_service.upload_order(1, "79927398714")

        assert store.orders == {}
        assert store.outbox == {}

    def test_same_user_reupload_is_idempotent(self, order_service, store):
        order_service.upload_order(1, VALID_NUMBER)

        first = order_service.upload_order(1, VALID_NUMBER)
        second = order_service.upload_order(1, VALID_NUMBER)

        assert first.status == UploadStatus.ALREADY_UPLOADED
        assert second.status == UploadStatus.ALREADY_UPLOADED
        assert len(store.orders) == 1
        assert len(store.outbox) == 1

    def test_other_user_conflict(self, order_service, store):
        order_service.upload_order(1, VALID_NUMBER)

        with pytest.raises(OrderNumberConflictError):
            order_service.upload_order(2, VALID_NUMBER)

        assert len(store.orders) == 1
        assert len(store.outbox) == 1

    def test_outbox_failure_rolls_back_order(self, order_service, store, outbox_repo, unit_of_work):
        """아웃박스 저장 실패 시 주문도 남지 않음"""
        outbox_repo.create = Mock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            order_service.upload_order(1, VALID_NUMBER)

        assert store.orders == {}
        assert store.outbox == {}
        assert unit_of_work.rollbacks == 1
        assert unit_of_work.commits == 0

    @pytest.mark.parametrize(
        "owner,expected",
        [(1, UploadStatus.ALREADY_UPLOADED), (2, OrderNumberConflictError)],
    )
    def test_concurrent_upload_is_reclassified(self, order_repo, unit_of_work, owner, expected):
        """조회 이후 다른 요청이 먼저 커밋한 경우 유니크 제약 위반을 재분류"""
        winner = Order.new(owner, VALID_NUMBER)
        lookups = iter([None, winner])
        order_repo.find_by_number = Mock(side_effect=lambda number: next(lookups))
        order_repo.create = Mock(side_effect=DuplicateOrderNumberError(VALID_NUMBER))
        service = OrderService(order_repo=order_repo, unit_of_work=unit_of_work)

        if expected is OrderNumberConflictError:
            with pytest.raises(OrderNumberConflictError):
                service.upload_order(1, VALID_NUMBER)
        else:
            assert service.upload_order(1, VALID_NUMBER).status == expected
        assert unit_of_work.rollbacks == 1


class TestGetUserOrders:
    def test_returns_only_own_orders_newest_first(self, order_service, seed_order):
        seed_order("79927398713", user_id=1, age_seconds=30)
        seed_order("12345678903", user_id=1, status=OrderStatus.PROCESSING, age_seconds=10)
        seed_order("4561261212345467", user_id=2)

        orders = order_service.get_user_orders(1)

        assert [o.number for o in orders] == ["12345678903", "79927398713"]
        assert orders[0].status == OrderStatus.PROCESSING

    def test_empty_list(self, order_service):
        assert order_service.get_user_orders(1) == []
