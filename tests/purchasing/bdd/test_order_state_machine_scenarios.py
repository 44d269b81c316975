"""BDD tests for the order state machine."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/order_state_machine.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the order moves to "{status}"'))
def _move(order, status, error):
    if error["exc"] is not None:
        return
    try:
        order.change_status(status)
    except ValidationError as exc:
        error["exc"] = exc


@when("the order is cancelled")
def _cancel(order, error):
    if error["exc"] is not None:
        return
    try:
        order.cancel("cust-001")
    except ValidationError as exc:
        error["exc"] = exc


@when("the order is cancelled again", target_fixture="second_cancel")
def _cancel_again(order):
    return order.cancel("cust-001")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order counts as delivered")
def _delivered(order):
    assert order.is_delivered is True
    assert order.delivered_at is not None


@then("the second cancellation reports no change")
def _no_change(second_cancel):
    assert second_cancel is False
