"""
execution/engine.py - Atomic multi-strategy arbitrage engine.

ATTEMPT PIPELINE:
=================
  kill switch  → ENGINE_PAUSED                         (not counted)
  dispatcher   → UNSUPPORTED_STRATEGY                  (not counted)
  validator    → INVALID_ROUTE                         (not counted)
  ---------------------------------------------------- VALIDATED
  calculator   → UNPROFITABLE, provider never called   (counted)
  atomic unit  → LOAN_FAILED / SLIPPAGE_EXCEEDED /
                 INSUFFICIENT_PROFIT, journal rolled back (counted)
               → SETTLED, journal committed            (counted)

ATOMIC UNIT:
  Every balance movement, venue mutation, bridge fee and loan transfer
  registers its inverse in a CompensationJournal. Any failure runs the
  journal in reverse, so venues, providers and the balance book end up
  exactly as before the attempt. The unit runs under atomic_lock, which
  may be shared by engines trading the same venues.
=================
"""

import threading
import time
import uuid
from typing import Callable, Optional

from capital.providers import CapitalProvider, LoanContext
from capital.registry import ProviderRegistry
from chains.bridges import BridgeRegistry
from core.constants import FailureReason, StrategyKind
from core.exceptions import (
    EngineError,
    EnginePausedError,
    InsufficientBalanceError,
    InsufficientProfitError,
    InvalidRouteError,
    LoanFailedError,
    SlippageExceededError,
    UnprofitableError,
    VenueError,
)
from core.logging import get_logger, log_abort, log_leg
from core.math import min_out_with_slippage
from core.models import ArbitrageRequest, ExecutionResult
from dex.registry import AssetAllowlist, VenueRegistry
from execution.balances import BalanceBook
from execution.journal import CompensationJournal
from execution.kill_switch import KillSwitch
from execution.state_machine import AttemptState, AttemptStateMachine
from monitoring.events import AttemptEvent, EventSink, LoggingEventSink
from monitoring.ledger import StatisticsLedger
from strategy.config import EngineConfig
from strategy.dispatcher import StrategyDispatcher, StrategyPlan
from strategy.profitability import ProfitabilityCalculator, ProfitabilityReport
from strategy.route_validator import RouteValidator, closing_hops

logger = get_logger("engine.execution")

IN_FLIGHT_REASONS = frozenset([
    FailureReason.LOAN_FAILED.value,
    FailureReason.SLIPPAGE_EXCEEDED.value,
    FailureReason.INSUFFICIENT_PROFIT.value,
])


class _AttemptRun:
    """
    Mutable footprint of one attempt inside the atomic unit.

    Doubles as the CapitalReceiver handed to the provider.
    """

    def __init__(
        self,
        engine: "ArbitrageEngine",
        request: ArbitrageRequest,
        plan: StrategyPlan,
        report: ProfitabilityReport,
        machine: AttemptStateMachine,
        journal: CompensationJournal,
    ):
        self.engine = engine
        self.request = request
        self.plan = plan
        self.report = report
        self.machine = machine
        self.journal = journal
        self.loan_network = plan.route.legs[0].network
        self.leg_amounts: list[int] = []
        self.amount_out = 0
        self.capital_fee = 0
        self.profit = 0
        self.callback_count = 0

    # -------------------------------------------------------------------------
    # CapitalReceiver
    # -------------------------------------------------------------------------

    def on_capital_received(self, asset: str, amount: int, fee: int, context: LoanContext) -> bool:
        self.callback_count += 1
        if self.callback_count > 1:
            raise LoanFailedError(
                "Provider called back more than once",
                details={"attempt_id": self.machine.attempt_id},
            )
        if asset != self.request.borrowed_asset or amount != self.request.amount_in:
            raise LoanFailedError(
                f"Provider delivered {amount} {asset}, expected "
                f"{self.request.amount_in} {self.request.borrowed_asset}",
                details={"attempt_id": self.machine.attempt_id},
            )

        self.machine.transition_to(AttemptState.LOAN_RECEIVED, metadata={"fee": fee})
        self.capital_fee = fee
        self.execute_legs()
        self.verify_repayment(owed=amount + fee)
        return True

    # -------------------------------------------------------------------------
    # Legs
    # -------------------------------------------------------------------------

    def execute_legs(self) -> None:
        """
        Run every leg in order with its minimum-output guard.

        Raises:
            SlippageExceededError: A leg returned below its guard or could
                not be filled
            InsufficientProfitError: A bridge hop could not be paid
        """
        engine = self.engine
        route = self.plan.route
        attempt_id = self.machine.attempt_id
        hops_after = {after: (src, dst) for after, src, dst in closing_hops(route)}
        journal = self.journal

        amount = self.request.amount_in
        for i, leg in enumerate(route.legs):
            self.machine.start_leg()
            min_out = min_out_with_slippage(self.report.leg_outputs[i], self.request.max_slippage_bps)

            try:
                engine.balances.debit(leg.token_in, amount, leg.network, journal=journal)
            except InsufficientBalanceError as e:
                raise InsufficientProfitError(
                    f"Leg {i} input {amount} {leg.token_in} not held on '{leg.network}'",
                    details={"leg_index": i, **e.details},
                ) from e

            try:
                amount_out = engine.venues.swap(leg.venue, leg.token_in, leg.token_out, amount, min_out)
            except SlippageExceededError as e:
                e.details.update({"leg_index": i, "attempt_id": attempt_id})
                raise
            except VenueError as e:
                raise SlippageExceededError(
                    f"Leg {i} on {leg.venue} could not be filled: {e.message}",
                    details={"leg_index": i, "venue": leg.venue, "min_amount_out": min_out},
                ) from e
            except EngineError:
                raise
            except Exception as e:
                raise SlippageExceededError(
                    f"Leg {i} on {leg.venue} failed: {e}",
                    details={"leg_index": i, "venue": leg.venue, "min_amount_out": min_out},
                ) from e

            engine.balances.credit(leg.token_out, amount_out, leg.network, journal=journal)
            self.leg_amounts.append(amount_out)
            log_leg(logger, attempt_id, i, leg.venue, amount, amount_out, min_out)

            amount = amount_out
            if i in hops_after:
                src, dst = hops_after[i]
                bridge = engine.bridges.find(src, dst)
                if bridge is None:
                    raise InsufficientProfitError(
                        f"Bridge {src}->{dst} unavailable mid-route",
                        details={"leg_index": i},
                    )
                try:
                    amount = bridge.transfer(leg.token_out, amount, engine.balances, journal=journal)
                except InsufficientBalanceError as e:
                    raise InsufficientProfitError(
                        f"Bridge hop {src}->{dst} failed: {e.message}",
                        details={"leg_index": i, **e.details},
                    ) from e

        self.amount_out = amount

    # -------------------------------------------------------------------------
    # Repayment
    # -------------------------------------------------------------------------

    def verify_repayment(self, owed: int) -> None:
        """
        Raises:
            InsufficientProfitError: Balance below owed or realized profit
                below the effective minimum
        """
        self.machine.transition_to(AttemptState.REPAYMENT_VERIFYING)
        engine = self.engine
        asset = self.request.borrowed_asset
        balance = engine.balances.balance_of(asset, self.loan_network)

        self.profit = (
            self.amount_out
            - self.request.amount_in
            - self.capital_fee
            - self.report.estimated_overhead_cost
            + self.report.side_term.bonus
        )
        min_profit = engine.config.effective_min_profit(self.request.min_profit)
        details = {
            "balance": balance,
            "owed": owed,
            "amount_out": self.amount_out,
            "profit": self.profit,
            "min_profit": min_profit,
        }

        if balance < owed:
            raise InsufficientProfitError(
                f"Balance {balance} {asset} cannot repay {owed}", details=details
            )
        if self.profit < min_profit:
            raise InsufficientProfitError(
                f"Realized profit {self.profit} below minimum {min_profit}", details=details
            )


class ArbitrageEngine:
    """
    Single entry point: attempt_arbitrage(request) -> ExecutionResult.

    Usage:
        engine = ArbitrageEngine(venues, allowlist, providers=providers)
        result = engine.attempt_arbitrage(request)
    """

    def __init__(
        self,
        venues: VenueRegistry,
        allowlist: AssetAllowlist,
        providers: Optional[ProviderRegistry] = None,
        bridges: Optional[BridgeRegistry] = None,
        config: Optional[EngineConfig] = None,
        ledger: Optional[StatisticsLedger] = None,
        balances: Optional[BalanceBook] = None,
        kill_switch: Optional[KillSwitch] = None,
        event_sink: Optional[EventSink] = None,
        atomic_lock: Optional[threading.RLock] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.venues = venues
        self.allowlist = allowlist
        self.providers = providers or ProviderRegistry()
        self.bridges = bridges or BridgeRegistry()
        self.config = config or EngineConfig()
        self.ledger = ledger or StatisticsLedger()
        self.balances = balances or BalanceBook()
        self.kill_switch = kill_switch or KillSwitch(
            max_consecutive_failures=self.config.max_consecutive_failures
            if self.config.kill_switch_enabled else 0,
            max_failure_rate_bps=self.config.max_failure_rate_bps
            if self.config.kill_switch_enabled else 0,
        )
        self.event_sink = event_sink or LoggingEventSink()
        self.atomic_lock = atomic_lock or threading.RLock()

        self.dispatcher = StrategyDispatcher(venues)
        self.validator = RouteValidator(venues, allowlist, self.bridges, self.providers, clock=clock)
        self.calculator = ProfitabilityCalculator(venues, self.config, self.bridges, self.providers)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def attempt_arbitrage(self, request: ArbitrageRequest) -> ExecutionResult:
        """
        Run one attempt to SETTLED or ABORTED.

        Every non-settled result carries a failure_reason. Only attempts
        that reached VALIDATED are recorded in the ledger.
        """
        started = time.monotonic()
        attempt_id = request.request_id or f"att_{uuid.uuid4().hex[:12]}"
        machine = AttemptStateMachine(attempt_id=attempt_id, leg_count=len(request.tokens))
        request = request.with_default_slippage(self.config.default_max_slippage_bps)

        with self.atomic_lock:
            result = self._run(request, machine)

        result.duration_ms = int((time.monotonic() - started) * 1000)

        if machine.reached_validation:
            self.ledger.record(request.strategy_kind, result.succeeded, result.profit)
            self.kill_switch.record_outcome(result.failure_reason in IN_FLIGHT_REASONS)

        self.event_sink.emit(AttemptEvent.from_result(result))
        return result

    def pause(self, reason: str = "MANUAL") -> None:
        self.kill_switch.manual_trigger(reason)

    def resume(self) -> None:
        self.kill_switch.release()

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def _run(self, request: ArbitrageRequest, machine: AttemptStateMachine) -> ExecutionResult:
        kind = request.strategy_kind
        base = ExecutionResult(
            succeeded=False,
            attempt_id=machine.attempt_id,
            strategy_kind=kind.value if isinstance(kind, StrategyKind) else str(kind),
            amount_in=request.amount_in,
            leg_count=len(request.tokens),
        )

        try:
            if self.kill_switch.is_active:
                raise EnginePausedError("Engine is paused by the kill switch")

            plan = self.dispatcher.dispatch(request)
            base.leg_count = plan.route.leg_count

            self.validator.validate_or_raise(request, plan.route)
        except EngineError as e:
            return self._abort(base, machine, e)

        machine.transition_to(AttemptState.VALIDATED)

        try:
            report = self.calculator.evaluate(request, plan)
        except InvalidRouteError as e:
            return self._abort(base, machine, e)

        base.cost = report.estimated_overhead_cost
        if not report.is_profitable:
            return self._abort(base, machine, UnprofitableError(
                report.reason,
                details={"expected_profit": report.expected_profit, "min_profit": report.min_profit},
            ))

        return self._execute_atomic(request, plan, report, machine, base)

    def _execute_atomic(
        self,
        request: ArbitrageRequest,
        plan: StrategyPlan,
        report: ProfitabilityReport,
        machine: AttemptStateMachine,
        base: ExecutionResult,
    ) -> ExecutionResult:
        journal = CompensationJournal(machine.attempt_id)
        run = _AttemptRun(self, request, plan, report, machine, journal)

        for venue_id in dict.fromkeys(plan.route.venues):
            venue = self.venues.require(venue_id)
            snapshot = venue.snapshot()
            journal.record(f"restore {venue_id}", lambda v=venue, s=snapshot: v.restore(s))

        try:
            if request.is_self_funded:
                self._run_self_funded(run)
            else:
                provider = self.providers.get(report.capital_provider)
                self._run_borrowed(run, provider)
            machine.transition_to(AttemptState.SETTLED)
            journal.commit()
        except EngineError as e:
            journal.rollback()
            base.capital_fee = run.capital_fee
            return self._abort(base, machine, e)
        except Exception:
            logger.error(
                "Unexpected error inside atomic unit, rolling back",
                exc_info=True,
                extra={"context": {"attempt_id": machine.attempt_id, "state": machine.state.value}},
            )
            journal.rollback()
            machine.abort(FailureReason.UNKNOWN.value)
            raise

        base.succeeded = True
        base.final_state = machine.state.value
        base.amount_out = run.amount_out
        base.capital_fee = run.capital_fee
        base.profit = run.profit
        base.leg_amounts = list(run.leg_amounts)

        logger.info(
            f"Attempt settled: profit {run.profit}",
            extra={
                "context": {
                    "attempt_id": machine.attempt_id,
                    "strategy_kind": base.strategy_kind,
                    "amount_in": request.amount_in,
                    "amount_out": run.amount_out,
                    "capital_fee": run.capital_fee,
                    "cost": base.cost,
                    "profit": run.profit,
                }
            },
        )
        return base

    def _run_borrowed(self, run: _AttemptRun, provider: CapitalProvider) -> None:
        request = run.request
        run.machine.transition_to(
            AttemptState.LOAN_PENDING, metadata={"provider": provider.provider_id}
        )
        context = LoanContext(
            attempt_id=run.machine.attempt_id,
            balances=self.balances,
            journal=run.journal,
            network=run.loan_network,
        )
        try:
            provider.initiate(request.borrowed_asset, request.amount_in, run, context)
        except EngineError:
            raise
        except Exception as e:
            raise LoanFailedError(
                f"Provider {provider.provider_id} failed: {e}",
                details={"provider": provider.provider_id},
            ) from e

        if run.callback_count != 1:
            raise LoanFailedError(
                f"Provider {provider.provider_id} never delivered the loan",
                details={"provider": provider.provider_id},
            )
        run.machine.transition_to(AttemptState.REPAID)

    def _run_self_funded(self, run: _AttemptRun) -> None:
        request = run.request
        held = self.balances.balance_of(request.borrowed_asset, run.loan_network)
        if held < request.amount_in:
            raise LoanFailedError(
                f"Self-funded attempt needs {request.amount_in} {request.borrowed_asset}, holding {held}",
                details={"held": held, "amount_in": request.amount_in},
            )
        run.execute_legs()
        run.verify_repayment(owed=request.amount_in)

    def _abort(
        self,
        base: ExecutionResult,
        machine: AttemptStateMachine,
        error: EngineError,
    ) -> ExecutionResult:
        reason, message = error.reason, error.message

        machine.abort(reason.value)
        base.succeeded = False
        base.failure_reason = reason.value
        base.final_state = machine.state.value
        base.detail = message
        base.amount_out = 0
        base.profit = 0

        if reason.value in IN_FLIGHT_REASONS:
            log_abort(
                logger,
                machine.attempt_id,
                reason.value,
                message,
                strategy_kind=base.strategy_kind,
                details=error.details,
            )
        else:
            logger.info(
                f"[{reason.value}] {message}",
                extra={
                    "context": {
                        "attempt_id": machine.attempt_id,
                        "failure_reason": reason.value,
                        "strategy_kind": base.strategy_kind,
                    }
                },
            )
        return base
