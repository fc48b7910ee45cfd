# PATH: tests/unit/test_journal.py
"""
Unit tests for the compensation journal and the balance book.
"""

import pytest

from core.exceptions import InsufficientBalanceError
from execution.balances import BalanceBook
from execution.journal import CompensationJournal


class TestCompensationJournal:

    def test_rollback_runs_in_reverse(self):
        journal = CompensationJournal("att_1")
        order = []
        journal.record("first", lambda: order.append(1))
        journal.record("second", lambda: order.append(2))
        assert journal.descriptions == ["first", "second"]
        assert journal.rollback() == 2
        assert order == [2, 1]
        assert journal.is_closed

    def test_rollback_is_idempotent(self):
        journal = CompensationJournal()
        calls = []
        journal.record("x", lambda: calls.append(1))
        journal.rollback()
        assert journal.rollback() == 0
        assert calls == [1]

    def test_commit_discards(self):
        journal = CompensationJournal()
        calls = []
        journal.record("x", lambda: calls.append(1))
        journal.commit()
        assert journal.rollback() == 0
        assert calls == []

    def test_closed_journal_rejects_records(self):
        journal = CompensationJournal()
        journal.commit()
        with pytest.raises(RuntimeError):
            journal.record("late", lambda: None)
        with pytest.raises(RuntimeError):
            journal.commit()

    def test_failed_compensation_still_runs_the_rest(self):
        journal = CompensationJournal()
        calls = []

        def broken():
            raise ValueError("boom")

        journal.record("a", lambda: calls.append("a"))
        journal.record("broken", broken)
        journal.record("c", lambda: calls.append("c"))
        with pytest.raises(ValueError):
            journal.rollback()
        assert calls == ["c", "a"]


class TestBalanceBook:

    def test_credit_debit(self):
        book = BalanceBook()
        book.credit("USDC", 100)
        book.debit("USDC", 40)
        assert book.balance_of("USDC") == 60

    def test_networks_are_separate(self):
        book = BalanceBook({("USDC", "arbitrum"): 100})
        assert book.balance_of("USDC", "arbitrum") == 100
        assert book.balance_of("USDC") == 0

    def test_overdraft_rejected(self):
        book = BalanceBook()
        book.credit("USDC", 10)
        with pytest.raises(InsufficientBalanceError):
            book.debit("USDC", 11)
        assert book.balance_of("USDC") == 10

    def test_negative_amounts_rejected(self):
        book = BalanceBook()
        with pytest.raises(ValueError):
            book.credit("USDC", -1)
        with pytest.raises(ValueError):
            book.debit("USDC", -1)

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            BalanceBook().credit("USDC", 1.0)

    def test_journaled_moves_roll_back(self):
        book = BalanceBook({("USDC", ""): 1_000})
        journal = CompensationJournal()
        book.debit("USDC", 400, journal=journal)
        book.credit("DAI", 399, journal=journal)
        assert book.snapshot() == {("USDC", ""): 600, ("DAI", ""): 399}
        journal.rollback()
        assert book.snapshot() == {("USDC", ""): 1_000}
