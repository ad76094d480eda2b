"""
Typed Exception Hierarchy for the Marketplace Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the engagement engine (API layer, payment callbacks, tests) must
react to failures by TYPE, never by parsing message strings.  Every
exception therefore carries:

  1. A ``code`` class attribute (machine-readable, API-safe)
  2. An ``http_status`` class attribute (the response class it maps to)
  3. Structured attributes for every value mentioned in the message

Example - RIGHT way:
    try:
        engagements.create_engagement(...)
    except PriceBelowFloorError as e:
        api_response(code=e.code, floor=str(e.floor), proposed=str(e.proposed))

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from MarketplaceError:

    MarketplaceError (base)
    |
    +-- NotFoundError                        404
    |   +-- EngagementNotFoundError
    |   +-- NegotiationNotFoundError
    |   +-- ProviderNotFoundError
    |   +-- UserAccountNotFoundError
    |
    +-- UnauthorizedError                    403
    |
    +-- ValidationError                      400
    |   +-- InvalidTermsError
    |   +-- InvalidPriceError
    |   +-- InvalidQuantityError
    |   +-- DateNotInFutureError
    |   +-- NaiveDatetimeError
    |   +-- InvalidScheduledTimeError
    |   +-- InvalidDayIndexError
    |   +-- InvalidPaymentMethodError
    |   +-- InvalidAmountError
    |   +-- SelfEngagementError
    |
    +-- ConfigurationError                   400
    |   +-- MissingRateError
    |
    +-- ConflictError                        400
    |   +-- PriceBelowFloorError
    |   +-- SelfResponseError
    |   +-- NegotiationAlreadyResolvedError
    |   +-- NegotiationSupersededError
    |   +-- InvalidTransitionError
    |   +-- PaymentNotConfirmedError
    |   +-- PaymentMethodNotSetError
    |   +-- DailySessionsIncompleteError
    |   +-- NoDailySessionsError
    |   +-- InsufficientBalanceError
    |
    +-- ConcurrencyError                     409
    |   +-- OptimisticLockError
    |
    +-- RateLimitedError                     429

Anything that is not a MarketplaceError is an internal error (500); see
``marketplace_services.errors`` for the translation rules.

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY INHERIT FROM Exception (not ValueError, etc.)?
   Domain exceptions must be catchable as a group without also catching
   programming errors.

2. WHY code AND http_status AS CLASS ATTRIBUTES?
   Both are static per type: ``PriceBelowFloorError.code`` is usable without
   an instance, for documentation and for the error translator.

3. WHY ConflictError MAPS TO 400?
   Business-rule conflicts (self-response, incomplete daily sessions, price
   floor) are reported to the caller as bad requests with a readable reason.
   Only lost optimistic-lock races map to 409.
"""

from decimal import Decimal


class MarketplaceError(Exception):
    """
    Base exception for all marketplace kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "MARKETPLACE_ERROR"
    http_status: int = 500


# Not-found exceptions


class NotFoundError(MarketplaceError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"
    http_status: int = 404

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class EngagementNotFoundError(NotFoundError):
    code: str = "ENGAGEMENT_NOT_FOUND"

    def __init__(self, engagement_id: str):
        super().__init__("Engagement", engagement_id)


class NegotiationNotFoundError(NotFoundError):
    code: str = "NEGOTIATION_NOT_FOUND"

    def __init__(self, negotiation_id: str):
        super().__init__("Negotiation", negotiation_id)


class ProviderNotFoundError(NotFoundError):
    code: str = "PROVIDER_NOT_FOUND"

    def __init__(self, provider_id: str):
        super().__init__("Provider", provider_id)


class UserAccountNotFoundError(NotFoundError):
    code: str = "USER_ACCOUNT_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__("UserAccount", user_id)


# Authorization


class UnauthorizedError(MarketplaceError):
    """Actor is not a party allowed to perform the action."""

    code: str = "UNAUTHORIZED"
    http_status: int = 403

    def __init__(self, actor_id: str, entity_id: str, action: str):
        self.actor_id = actor_id
        self.entity_id = entity_id
        self.action = action
        super().__init__(
            f"Actor {actor_id} is not allowed to {action} on {entity_id}"
        )


# Validation exceptions


class ValidationError(MarketplaceError):
    """Base exception for malformed or missing input."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 400


class InvalidTermsError(ValidationError):
    """A negotiation or engagement term is missing or malformed."""

    code: str = "INVALID_TERMS"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidPriceError(ValidationError):
    """Price is zero or negative."""

    code: str = "INVALID_PRICE"

    def __init__(self, price: Decimal):
        self.price = price
        super().__init__(f"Price must be greater than zero, got {price}")


class InvalidQuantityError(ValidationError):
    """Hours or days quantity is not a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be a positive integer, got {value!r}")


class DateNotInFutureError(ValidationError):
    """A scheduled date/time is not strictly after the current time."""

    code: str = "DATE_NOT_IN_FUTURE"

    def __init__(self, field: str, value: str, now: str):
        self.field = field
        self.value = value
        self.now = now
        super().__init__(
            f"{field} must be in the future: {value} is not after {now}"
        )


class NaiveDatetimeError(ValidationError):
    """A datetime without timezone was supplied while naive input is rejected."""

    code: str = "NAIVE_DATETIME"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} must carry a timezone")


class InvalidScheduledTimeError(ValidationError):
    code: str = "INVALID_SCHEDULED_TIME"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Scheduled time must be HH:MM, got {value!r}")


class InvalidDayIndexError(ValidationError):
    """Daily session index is negative or beyond the schedule."""

    code: str = "INVALID_DAY_INDEX"

    def __init__(self, day_index: int, session_count: int):
        self.day_index = day_index
        self.session_count = session_count
        super().__init__(
            f"Day index {day_index} out of range for {session_count} session(s)"
        )


class InvalidPaymentMethodError(ValidationError):
    code: str = "INVALID_PAYMENT_METHOD"

    def __init__(self, method: str, allowed: tuple[str, ...]):
        self.method = method
        self.allowed = allowed
        super().__init__(
            f"Invalid payment method {method!r}; expected one of {', '.join(allowed)}"
        )


class InvalidAmountError(ValidationError):
    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Decimal):
        self.amount = amount
        super().__init__(f"Amount must be greater than zero, got {amount}")


class SelfEngagementError(ValidationError):
    """A user tried to hire their own provider profile."""

    code: str = "SELF_ENGAGEMENT"

    def __init__(self, user_id: str, provider_id: str):
        self.user_id = user_id
        self.provider_id = provider_id
        super().__init__(
            f"User {user_id} owns provider {provider_id} and cannot engage it"
        )


# Configuration exceptions


class ConfigurationError(MarketplaceError):
    """Base exception for missing or inconsistent provider configuration."""

    code: str = "CONFIGURATION_ERROR"
    http_status: int = 400


class MissingRateError(ConfigurationError):
    """Provider has no minimum rate for the requested pricing mode."""

    code: str = "MISSING_RATE"

    def __init__(self, pricing_mode: str, provider_id: str | None = None):
        self.pricing_mode = pricing_mode
        self.provider_id = provider_id
        super().__init__(f"provider has no minimum rate for mode {pricing_mode}")


# Conflict exceptions (business-rule violations)


class ConflictError(MarketplaceError):
    """Base exception for requests that conflict with the current state."""

    code: str = "CONFLICT"
    http_status: int = 400


class PriceBelowFloorError(ConflictError):
    """Explicit price is lower than the provider's minimum."""

    code: str = "PRICE_BELOW_FLOOR"

    def __init__(self, floor: Decimal, proposed: Decimal):
        self.floor = floor
        self.proposed = proposed
        super().__init__(
            f"Proposed price {proposed:.2f} must be at least the minimum of {floor:.2f}"
        )


class SelfResponseError(ConflictError):
    """A proposer tried to respond to their own negotiation."""

    code: str = "SELF_RESPONSE"

    def __init__(self, negotiation_id: str, actor_id: str):
        self.negotiation_id = negotiation_id
        self.actor_id = actor_id
        super().__init__(
            f"Actor {actor_id} cannot respond to their own negotiation {negotiation_id}"
        )


class NegotiationAlreadyResolvedError(ConflictError):
    code: str = "NEGOTIATION_ALREADY_RESOLVED"

    def __init__(self, negotiation_id: str, status: str):
        self.negotiation_id = negotiation_id
        self.status = status
        super().__init__(f"Negotiation {negotiation_id} is already {status}")


class NegotiationSupersededError(ConflictError):
    """A newer proposal exists; only the live negotiation is actionable."""

    code: str = "NEGOTIATION_SUPERSEDED"

    def __init__(self, negotiation_id: str, live_negotiation_id: str | None):
        self.negotiation_id = negotiation_id
        self.live_negotiation_id = live_negotiation_id
        super().__init__(
            f"Negotiation {negotiation_id} was superseded by {live_negotiation_id}"
        )


class InvalidTransitionError(ConflictError):
    """Requested action is not allowed from the engagement's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, engagement_id: str, current_status: str, action: str):
        self.engagement_id = engagement_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} engagement {engagement_id} in status {current_status}"
        )


class PaymentNotConfirmedError(ConflictError):
    code: str = "PAYMENT_NOT_CONFIRMED"

    def __init__(self, engagement_id: str):
        self.engagement_id = engagement_id
        super().__init__(f"Payment for engagement {engagement_id} is not confirmed")


class PaymentMethodNotSetError(ConflictError):
    code: str = "PAYMENT_METHOD_NOT_SET"

    def __init__(self, engagement_id: str):
        self.engagement_id = engagement_id
        super().__init__(f"Engagement {engagement_id} has no payment method")


class DailySessionsIncompleteError(ConflictError):
    """Not every daily session is confirmed by both parties."""

    code: str = "DAILY_SESSIONS_INCOMPLETE"

    def __init__(self, engagement_id: str, pending_days: tuple[int, ...]):
        self.engagement_id = engagement_id
        self.pending_days = pending_days
        super().__init__(
            f"Engagement {engagement_id} has unconfirmed daily sessions: "
            f"{', '.join(str(d) for d in pending_days)}"
        )


class NoDailySessionsError(ConflictError):
    code: str = "NO_DAILY_SESSIONS"

    def __init__(self, engagement_id: str):
        self.engagement_id = engagement_id
        super().__init__(f"Daily engagement {engagement_id} has no sessions")


class InsufficientBalanceError(ConflictError):
    code: str = "INSUFFICIENT_BALANCE"

    def __init__(self, user_id: str, requested: Decimal):
        self.user_id = user_id
        self.requested = requested
        super().__init__(f"Balance of {user_id} does not cover {requested}")


# Concurrency-related exceptions


class ConcurrencyError(MarketplaceError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"
    http_status: int = 409


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Throttling


class RateLimitedError(MarketplaceError):
    code: str = "RATE_LIMITED"
    http_status: int = 429

    def __init__(self, key: str, retry_after_seconds: int):
        self.key = key
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Wait {retry_after_seconds}s before retrying")
