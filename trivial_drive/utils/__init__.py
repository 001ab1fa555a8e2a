"""Utility functions and helpers."""

from trivial_drive.utils.observable import (
    BroadcastChannel,
    DerivedValue,
    Observable,
    ObservableValue,
    Subscription,
    combine_latest,
    first_matching,
)
from trivial_drive.utils.token_generator import (
    generate_order_id,
    generate_purchase_token,
)

__all__ = [
    # Observables
    "Observable",
    "ObservableValue",
    "DerivedValue",
    "combine_latest",
    "first_matching",
    # Broadcast
    "BroadcastChannel",
    "Subscription",
    # Tokens
    "generate_purchase_token",
    "generate_order_id",
]
