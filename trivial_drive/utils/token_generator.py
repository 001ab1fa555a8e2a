"""Token and order ID generation utilities.

Generates unique purchase tokens and order IDs in a format compatible with
Google Play Billing.
"""

import random
import time
import uuid

DEFAULT_TOKEN_PREFIX = "trivialdrive"


def generate_purchase_token(prefix: str = DEFAULT_TOKEN_PREFIX) -> str:
    """Generate a unique purchase token.

    Format: {prefix}_purchase_{uuid}_{timestamp}
    Example: trivialdrive_purchase_a1b2c3d4e5f6a7b8_1700000000000
    """
    token_id = uuid.uuid4().hex[:16]
    timestamp = int(time.time() * 1000)
    return f"{prefix}_purchase_{token_id}_{timestamp}"


def generate_order_id(prefix: str = "GPA") -> str:
    """Generate a Google Play-style order ID.

    Format: {prefix}.{rand}-{rand}-{rand}-{rand}
    Example: GPA.1234-5678-9012-3456
    """
    parts = [random.randint(1000, 9999) for _ in range(4)]
    return f"{prefix}.{parts[0]}-{parts[1]}-{parts[2]}-{parts[3]}"

