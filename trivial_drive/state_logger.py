"""State change logging for the gas tank, purchases and entitlements.

Tracks state transitions with before/after values for debugging and auditing.
"""

from typing import Any, Optional

from trivial_drive.logging_config import get_logger

logger = get_logger(__name__)


def _short_token(token: str) -> str:
    return token[:20] + "..." if len(token) > 20 else token


def log_gas_level_change(
    old_level: int,
    new_level: int,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log a change of the persisted gas tank level.

    Args:
        old_level: Level before the change
        new_level: Level after the change
        reason: Why the level changed (drive, refill, ...)
        **extra_context: Additional context
    """
    logger.info(
        "gas_level_changed",
        old_level=old_level,
        new_level=new_level,
        delta=new_level - old_level,
        reason=reason,
        **extra_context,
    )


def log_purchase_state_change(
    token: str,
    product_id: str,
    old_state: Any,
    new_state: Any,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log purchase state change.

    Args:
        token: Purchase token
        product_id: SKU
        old_state: Previous state value
        new_state: New state value
        reason: Reason for state change
        **extra_context: Additional context
    """
    logger.info(
        "purchase_state_changed",
        token=_short_token(token),
        product_id=product_id,
        old_state=str(old_state),
        new_state=str(new_state),
        reason=reason,
        **extra_context,
    )


def log_consumption_change(
    token: str,
    product_id: str,
    old_state: Any,
    new_state: Any,
    **extra_context: Any,
) -> None:
    """Log consumption state change."""
    logger.info(
        "consumption_state_changed",
        token=_short_token(token),
        product_id=product_id,
        old_state=str(old_state),
        new_state=str(new_state),
        **extra_context,
    )


def log_entitlement_change(
    product_id: str,
    owned: bool,
    reason: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log a SKU becoming owned or no longer owned.

    Args:
        product_id: SKU
        owned: New ownership value
        reason: Reason for the change (purchase, replaced, consumed, ...)
        **extra_context: Additional context
    """
    logger.info(
        "entitlement_changed",
        product_id=product_id,
        owned=owned,
        reason=reason,
        **extra_context,
    )


def log_billing_flow_change(
    product_id: str,
    in_process: bool,
    outcome: Optional[str] = None,
    **extra_context: Any,
) -> None:
    """Log a billing flow starting or finishing."""
    logger.info(
        "billing_flow_changed",
        product_id=product_id,
        in_process=in_process,
        outcome=outcome,
        **extra_context,
    )
