"""Gateway reference generation.

The gateway limits the merchant buy-order to 26 characters and the session
id to 61. Order ids that fit are embedded verbatim so the order can be
recovered from the buy-order alone; longer ids (UUIDs) are replaced by a
stable hash prefix and must be correlated through the stored mapping.
"""

import hashlib
import time

BUY_ORDER_MAX_LENGTH = 26
SESSION_ID_MAX_LENGTH = 61
BUY_ORDER_SEPARATOR = "_"

_HASH_PREFIX_LENGTH = 16


def _millis(now: float | None) -> str:
    return str(int((time.time() if now is None else now) * 1000))


def generate_buy_order(order_id: str, now: float | None = None) -> str:
    """``{order_id}_{last 6 ms digits}``, or ``{md5 prefix}_{suffix}`` when that would be too long."""
    suffix = _millis(now)[-6:]
    natural = f"{order_id}{BUY_ORDER_SEPARATOR}{suffix}"
    if len(natural) <= BUY_ORDER_MAX_LENGTH:
        return natural

    digest = hashlib.md5(str(order_id).encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{digest[:_HASH_PREFIX_LENGTH]}{BUY_ORDER_SEPARATOR}{suffix}"


def generate_session_id(user_id: str, now: float | None = None) -> str:
    session_id = f"S{str(user_id)[-12:]}T{_millis(now)[-10:]}"
    return session_id[:SESSION_ID_MAX_LENGTH]


def order_id_from_buy_order(buy_order: str) -> str | None:
    """The order id embedded in a natural buy-order, if any.

    Splits on the last separator, so order ids that themselves contain the
    separator survive. Hash-form buy-orders also parse, to a prefix that
    matches no order; callers must verify the order exists.
    """
    if not buy_order or BUY_ORDER_SEPARATOR not in buy_order:
        return None
    candidate, _, suffix = buy_order.rpartition(BUY_ORDER_SEPARATOR)
    if not candidate or not suffix.isdigit():
        return None
    return candidate
