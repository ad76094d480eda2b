"""
marketplace_services.engagement_orchestrator -- Request-scoped entrypoint.

Responsibility:
    Runs each marketplace operation in its own session and transaction.
    Builds the kernel services for that session from the active
    configuration, binds the log context, commits on success and rolls
    back on failure.

Architecture position:
    Services -- the only layer that commits.  Kernel services flush,
    selectors read, engines compute; this module decides when the work
    becomes durable.

Invariants enforced:
    - One transaction per call.  A failed call leaves nothing behind.
    - Kernel services within a call share one Session and one Clock.
    - Lost write races (version mismatch, duplicate chain position) reach
      the caller as OptimisticLockError, never as a driver exception.

Failure modes:
    - Every MarketplaceError raised by the kernel propagates unchanged
      after rollback and a ``<operation>_failed`` warning.
    - Unexpected exceptions propagate after rollback and an error log with
      the traceback; ``marketplace_services.errors`` turns them into a
      generic 500.

Usage:
    orchestrator = build_engagement_orchestrator()
    info = orchestrator.create_engagement(actor, provider_id, "hourly", "Garden")
    orchestrator.open_negotiation(info.id, actor, NegotiationTerms(message="hi"))
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from marketplace_config import get_active_config
from marketplace_config.schema import MarketplaceConfig
from marketplace_kernel.domain.clock import Clock, SystemClock
from marketplace_kernel.domain.dtos import (
    BalanceEntryInfo,
    EngagementInfo,
    EngagementView,
    NegotiationInfo,
    WithdrawalInfo,
)
from marketplace_kernel.domain.values import (
    Actor,
    EngagementStatus,
    NegotiationDecision,
    NegotiationTerms,
    PaymentMethod,
    PricingMode,
)
from marketplace_kernel.exceptions import MarketplaceError, OptimisticLockError
from marketplace_kernel.logging_config import LogContext, get_logger
from marketplace_kernel.selectors.engagement_selector import EngagementSelector
from marketplace_kernel.selectors.negotiation_selector import NegotiationSelector
from marketplace_kernel.services.balance_service import BalanceService
from marketplace_kernel.services.daily_session_service import DailySessionService
from marketplace_kernel.services.engagement_service import EngagementService
from marketplace_kernel.services.negotiation_service import NegotiationService
from marketplace_kernel.services.payment_service import PaymentService
from marketplace_kernel.services.settlement_service import SettlementService
from marketplace_kernel.services.withdrawal_service import WithdrawalService

logger = get_logger("services.orchestrator")


@dataclass
class KernelServices:
    """The kernel services wired around one session."""

    session: Session
    balances: BalanceService
    settlement: SettlementService
    engagements: EngagementService
    negotiations: NegotiationService
    daily_sessions: DailySessionService
    payments: PaymentService
    withdrawals: WithdrawalService
    engagement_reads: EngagementSelector
    negotiation_reads: NegotiationSelector


class EngagementOrchestrator:
    """Request-per-call facade over the kernel.

    Contract:
        Receives a session factory, a Clock and a MarketplaceConfig.  Every
        public method opens a session, runs exactly one kernel operation,
        and commits or rolls back before returning.

    Non-goals:
        - Does NOT authenticate.  Actors are trusted as given.
        - Does NOT retry lost races; callers reload and decide.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._config = config or get_active_config()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def config(self) -> MarketplaceConfig:
        return self._config

    def wire(self, session: Session) -> KernelServices:
        """Construct each kernel service once for ``session``."""
        clock = self._clock
        cfg = self._config
        policy = cfg.scheduling.naive_datetime_policy

        balances = BalanceService(session, clock)
        settlement = SettlementService(
            session,
            clock,
            platform_fee_rate=cfg.settlement.platform_fee_rate,
            decimal_places=cfg.settlement.money_decimal_places,
            balances=balances,
        )
        return KernelServices(
            session=session,
            balances=balances,
            settlement=settlement,
            engagements=EngagementService(
                session, clock, settlement=settlement, naive_datetime_policy=policy,
            ),
            negotiations=NegotiationService(session, clock, naive_datetime_policy=policy),
            daily_sessions=DailySessionService(
                session, clock, settlement=settlement, naive_datetime_policy=policy,
            ),
            payments=PaymentService(session, clock, allowed_methods=cfg.payments.methods),
            withdrawals=WithdrawalService(session, clock, balances=balances),
            engagement_reads=EngagementSelector(session),
            negotiation_reads=NegotiationSelector(session),
        )

    @contextmanager
    def unit_of_work(
        self,
        operation: str,
        actor: Actor | None = None,
        **context: object,
    ) -> Generator[KernelServices, None, None]:
        """
        One transaction around one operation.

        Binds ``operation``, ``actor_id`` and any extra context fields
        (``engagement_id``, ``negotiation_id``) into the log context.
        """
        bound = {k: v for k, v in context.items() if v is not None}
        if actor is not None:
            bound["actor_id"] = actor.user_id

        with LogContext.bind(operation=operation, **bound):
            session = self._session_factory()
            try:
                yield self.wire(session)
                session.commit()
            except MarketplaceError as exc:
                session.rollback()
                logger.warning(
                    f"{operation}_failed",
                    extra={"error_code": exc.code, "error": str(exc)},
                )
                raise
            except (StaleDataError, IntegrityError) as exc:
                session.rollback()
                conflict = OptimisticLockError(
                    "Engagement", str(context.get("engagement_id"))
                )
                logger.warning(
                    f"{operation}_failed",
                    extra={"error_code": conflict.code, "error": str(exc)},
                )
                raise conflict from exc
            except Exception:
                session.rollback()
                logger.error(f"{operation}_failed", exc_info=True)
                raise
            finally:
                session.close()

    # ------------------------------------------------------------------
    # Engagements
    # ------------------------------------------------------------------

    def create_engagement(
        self,
        actor: Actor,
        provider_id: UUID,
        pricing_mode: PricingMode | str,
        title: str,
        description: str | None = None,
        proposed_price: Decimal | None = None,
        proposed_hours: int | None = None,
        proposed_days: int | None = None,
        scheduled_date: datetime | None = None,
    ) -> EngagementInfo:
        with self.unit_of_work("create_engagement", actor) as k:
            return k.engagements.create_engagement(
                actor,
                provider_id,
                pricing_mode,
                title,
                description=description,
                proposed_price=proposed_price,
                proposed_hours=proposed_hours,
                proposed_days=proposed_days,
                scheduled_date=scheduled_date,
            )

    def get_engagement(self, engagement_id: UUID, actor: Actor | None = None) -> EngagementView:
        with self.unit_of_work("get_engagement", actor, engagement_id=engagement_id) as k:
            return k.engagement_reads.get_view(engagement_id, actor)

    def list_client_engagements(self, actor: Actor) -> list[EngagementView]:
        with self.unit_of_work("list_client_engagements", actor) as k:
            return k.engagement_reads.list_for_client(actor.user_id)

    def list_provider_engagements(self, actor: Actor) -> list[EngagementView]:
        with self.unit_of_work("list_provider_engagements", actor) as k:
            return k.engagement_reads.list_for_provider_user(actor.user_id)

    def request_completion(self, engagement_id: UUID, actor: Actor) -> EngagementInfo:
        with self.unit_of_work("request_completion", actor, engagement_id=engagement_id) as k:
            return k.engagements.request_completion(engagement_id, actor)

    def cancel_engagement(self, engagement_id: UUID, actor: Actor) -> EngagementInfo:
        with self.unit_of_work("cancel_engagement", actor, engagement_id=engagement_id) as k:
            return k.engagements.cancel(engagement_id, actor)

    def update_status(
        self,
        engagement_id: UUID,
        actor: Actor,
        status: EngagementStatus | str,
    ) -> EngagementInfo:
        with self.unit_of_work("update_status", actor, engagement_id=engagement_id) as k:
            return k.engagements.update_status(engagement_id, actor, status)

    # ------------------------------------------------------------------
    # Negotiations
    # ------------------------------------------------------------------

    def open_negotiation(
        self,
        engagement_id: UUID,
        actor: Actor,
        terms: NegotiationTerms,
    ) -> NegotiationInfo:
        with self.unit_of_work("open_negotiation", actor, engagement_id=engagement_id) as k:
            return k.negotiations.open(engagement_id, actor, terms)

    def respond_to_negotiation(
        self,
        negotiation_id: UUID,
        actor: Actor,
        decision: NegotiationDecision | str,
    ) -> NegotiationInfo:
        with self.unit_of_work(
            "respond_to_negotiation", actor, negotiation_id=negotiation_id
        ) as k:
            return k.negotiations.respond(negotiation_id, actor, decision)

    def counter_propose(
        self,
        negotiation_id: UUID,
        actor: Actor,
        terms: NegotiationTerms,
    ) -> NegotiationInfo:
        with self.unit_of_work("counter_propose", actor, negotiation_id=negotiation_id) as k:
            return k.negotiations.counter_propose(negotiation_id, actor, terms)

    def list_negotiations(self, engagement_id: UUID) -> list[NegotiationInfo]:
        with self.unit_of_work("list_negotiations", engagement_id=engagement_id) as k:
            return k.negotiation_reads.list_chain(engagement_id)

    # ------------------------------------------------------------------
    # Daily sessions
    # ------------------------------------------------------------------

    def update_daily_session(
        self,
        engagement_id: UUID,
        actor: Actor,
        day_index: int,
        completed: bool | None = None,
        scheduled_date: datetime | None = None,
        scheduled_time: str | None = None,
    ) -> EngagementInfo:
        with self.unit_of_work(
            "update_daily_session", actor, engagement_id=engagement_id
        ) as k:
            return k.daily_sessions.update_session(
                engagement_id,
                actor,
                day_index,
                completed=completed,
                scheduled_date=scheduled_date,
                scheduled_time=scheduled_time,
            )

    # ------------------------------------------------------------------
    # Payment, balance, withdrawals
    # ------------------------------------------------------------------

    def select_payment_method(
        self,
        engagement_id: UUID,
        actor: Actor,
        method: PaymentMethod | str,
    ) -> EngagementInfo:
        with self.unit_of_work(
            "select_payment_method", actor, engagement_id=engagement_id
        ) as k:
            return k.payments.select_payment_method(engagement_id, actor, method)

    def confirm_payment(self, engagement_id: UUID, actor: Actor) -> EngagementInfo:
        with self.unit_of_work("confirm_payment", actor, engagement_id=engagement_id) as k:
            return k.payments.confirm_payment(engagement_id, actor)

    def get_balance(self, actor: Actor) -> Decimal:
        with self.unit_of_work("get_balance", actor) as k:
            return k.balances.get_balance(actor.user_id)

    def list_balance_entries(self, actor: Actor) -> list[BalanceEntryInfo]:
        with self.unit_of_work("list_balance_entries", actor) as k:
            return k.balances.list_entries(actor.user_id)

    def request_withdrawal(self, actor: Actor, amount: Decimal) -> WithdrawalInfo:
        with self.unit_of_work("request_withdrawal", actor) as k:
            return k.withdrawals.request_withdrawal(actor, amount)

    def list_withdrawals(self, actor: Actor) -> list[WithdrawalInfo]:
        with self.unit_of_work("list_withdrawals", actor) as k:
            return k.withdrawals.list_withdrawals(actor.user_id)


def build_engagement_orchestrator(
    session_factory: Callable[[], Session] | None = None,
    clock: Clock | None = None,
    config_path=None,
) -> EngagementOrchestrator:
    """Build an EngagementOrchestrator from the active config (production entrypoint).

    Args:
        session_factory: Defaults to the process-wide factory from
            ``marketplace_kernel.db.engine``; the engine must be initialized.
        clock: Optional clock; default SystemClock.
        config_path: Optional YAML config file; default is the bundled set.
    """
    from marketplace_kernel.db.engine import get_session_factory

    return EngagementOrchestrator(
        session_factory=session_factory or get_session_factory(),
        clock=clock or SystemClock(),
        config=get_active_config(config_path),
    )
