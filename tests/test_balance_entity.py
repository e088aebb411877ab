from decimal import Decimal

import pytest

from loyaltyapi.core.exceptions import (
    InsufficientBalanceError,
    InvalidUserIdError,
    MissingNumberError,
    NonPositiveAmountError,
)
from loyaltyapi.schemas.balance import Balance, BalanceResponse, Withdrawal


class TestBalance:
    """Balance 적립/출금 테스트"""

    def test_new_balance_is_zero(self):
        balance = Balance.new(1)

        assert balance.current == Decimal("0")
        assert balance.withdrawn == Decimal("0")

    def test_accrue_adds_to_current(self):
        balance = Balance.new(1)

        balance.accrue(Decimal("100.5"))
        balance.accrue(Decimal("0.5"))

        assert balance.current == Decimal("101.0")
        assert balance.withdrawn == Decimal("0")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    def test_accrue_rejects_non_positive(self, amount):
        with pytest.raises(NonPositiveAmountError):
            Balance.new(1).accrue(amount)

    def test_withdraw_more_than_current_fails_without_change(self):
        balance = Balance.restore(1, Decimal("100"), Decimal("0"))

        with pytest.raises(InsufficientBalanceError):
            balance.withdraw(Decimal("150"))

        assert balance.current == Decimal("100")
        assert balance.withdrawn == Decimal("0")

    def test_withdraw_full_amount(self):
        balance = Balance.restore(1, Decimal("100"), Decimal("20"))

        balance.withdraw(Decimal("100"))

        assert balance.current == Decimal("0")
        assert balance.withdrawn == Decimal("120")

    def test_can_withdraw(self):
        balance = Balance.restore(1, Decimal("10"), Decimal("0"))

        assert balance.can_withdraw(Decimal("10")) is True
        assert balance.can_withdraw(Decimal("10.01")) is False
        assert balance.can_withdraw(Decimal("0")) is False

    def test_response_uses_floats(self):
        response = BalanceResponse.from_balance(
            Balance.restore(1, Decimal("50.5"), Decimal("50"))
        )

        assert response.model_dump() == {"current": 50.5, "withdrawn": 50.0}


class TestWithdrawal:
    def test_new_withdrawal(self):
        withdrawal = Withdrawal.new(1, "2377225624", Decimal("751"))

        assert withdrawal.id is None
        assert withdrawal.order_number == "2377225624"
        assert withdrawal.sum == Decimal("751")
        assert withdrawal.processed_at is not None

    def test_rejects_invalid_user(self):
        with pytest.raises(InvalidUserIdError):
            Withdrawal.new(0, "2377225624", Decimal("1"))

    def test_rejects_empty_order(self):
        with pytest.raises(MissingNumberError):
            Withdrawal.new(1, "", Decimal("1"))

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_rejects_non_positive_sum(self, amount):
        with pytest.raises(NonPositiveAmountError):
            Withdrawal.new(1, "2377225624", amount)
