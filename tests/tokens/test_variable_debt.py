"""Tests for the variable debt ledger."""

import pytest

from reservecore.errors import (
    InsufficientAllowance,
    InvalidMintAmount,
    OperationNotSupported,
    Unauthorized,
)
from reservecore.math.wad_ray import RAY, WAD
from reservecore.tokens.variable_debt import VariableDebtToken


@pytest.fixture
def debt(pool) -> VariableDebtToken:
    return VariableDebtToken(pool, "DAI", "Aave variable debt bearing DAI", "variableDebtDAI")


class TestMintBurn:
    def test_first_mint(self, pool, debt: VariableDebtToken) -> None:
        assert debt.mint(pool.address, "bob", "bob", 100 * WAD, RAY) is True
        assert debt.mint(pool.address, "bob", "bob", 100 * WAD, RAY) is False
        assert debt.balance_of("bob") == 200 * WAD

    def test_debt_follows_index(self, pool, debt: VariableDebtToken) -> None:
        debt.mint(pool.address, "bob", "bob", 100 * WAD, RAY)
        pool.variable_borrow_index = 15 * 10**26
        assert debt.balance_of("bob") == 150 * WAD
        assert debt.total_supply() == 150 * WAD

    def test_full_repay_clears_position(self, pool, debt: VariableDebtToken) -> None:
        pool.variable_borrow_index = 12 * 10**26
        debt.mint(pool.address, "bob", "bob", 100 * WAD, pool.variable_borrow_index)
        pool.variable_borrow_index = 13 * 10**26
        debt.burn(pool.address, "bob", debt.balance_of("bob"), pool.variable_borrow_index)
        assert debt.scaled_balance_of("bob") == 0
        assert debt.scaled_total_supply() == 0

    def test_mint_scaling_to_zero(self, pool, debt: VariableDebtToken) -> None:
        with pytest.raises(InvalidMintAmount):
            debt.mint(pool.address, "bob", "bob", 1, 2 * RAY)

    def test_only_pool(self, debt: VariableDebtToken) -> None:
        with pytest.raises(Unauthorized):
            debt.mint("0xdead", "bob", "bob", WAD, RAY)


class TestCreditDelegation:
    def test_borrow_on_behalf(self, pool, debt: VariableDebtToken) -> None:
        debt.approve_delegation("carol", "bob", 100 * WAD)
        debt.mint(pool.address, "bob", "carol", 60 * WAD, RAY)
        assert debt.balance_of("carol") == 60 * WAD
        assert debt.balance_of("bob") == 0
        assert debt.borrow_allowance("carol", "bob") == 40 * WAD

    def test_borrow_without_delegation(self, pool, debt: VariableDebtToken) -> None:
        with pytest.raises(InsufficientAllowance):
            debt.mint(pool.address, "bob", "carol", 60 * WAD, RAY)
        assert debt.scaled_total_supply() == 0

    def test_failed_mint_keeps_allowance(self, pool, debt: VariableDebtToken) -> None:
        debt.approve_delegation("carol", "bob", 10)
        with pytest.raises(InvalidMintAmount):
            debt.mint(pool.address, "bob", "carol", 1, 2 * RAY)
        assert debt.borrow_allowance("carol", "bob") == 10


class TestNonTransferable:
    def test_transfer(self, pool, debt: VariableDebtToken) -> None:
        debt.mint(pool.address, "bob", "bob", 100 * WAD, RAY)
        with pytest.raises(OperationNotSupported):
            debt.transfer("bob", "carol", 10 * WAD)
        assert debt.balance_of("bob") == 100 * WAD

    def test_transfer_from(self, debt: VariableDebtToken) -> None:
        with pytest.raises(OperationNotSupported):
            debt.transfer_from("dave", "bob", "carol", 1)

    def test_approve_and_allowance(self, debt: VariableDebtToken) -> None:
        with pytest.raises(OperationNotSupported):
            debt.approve("bob", "carol", 1)
        with pytest.raises(NotImplementedError):
            debt.allowance("bob", "carol")
