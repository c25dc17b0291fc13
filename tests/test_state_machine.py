import pytest

from matching.services.exceptions import InvalidStateTransition
from matching.state_machine import (
    LOAD_MACHINE,
    MATCH_MACHINE,
    SHIPMENT_MACHINE,
    StateMachine,
)


@pytest.mark.parametrize(
    "state, event, expected",
    [
        ("pending", "make_offer", "offered"),
        ("pending", "accept_offer", "accepted"),
        ("offered", "accept_offer", "accepted"),
        ("offered", "reject_offer", "rejected"),
        ("offered", "expire", "expired"),
        ("accepted", "cancel", "cancelled"),
    ],
)
def test_match_transitions(state, event, expected):
    assert MATCH_MACHINE.next_state(state, event) == expected


@pytest.mark.parametrize(
    "state, event",
    [
        ("accepted", "reject_offer"),
        ("accepted", "expire"),
        ("rejected", "accept_offer"),
        ("cancelled", "cancel"),
        ("offered", "make_offer"),
    ],
)
def test_match_illegal_transitions(state, event):
    assert not MATCH_MACHINE.can(state, event)
    with pytest.raises(InvalidStateTransition, match=f"cannot '{event}' from '{state}'"):
        MATCH_MACHINE.next_state(state, event)


def test_load_happy_path():
    state = "posted"
    for event in ["match_with_carrier", "accept_by_carrier", "pickup", "start_transit", "deliver"]:
        state = LOAD_MACHINE.next_state(state, event)
    assert state == "delivered"


def test_load_cannot_be_cancelled_after_pickup():
    assert LOAD_MACHINE.can("accepted", "cancel")
    assert not LOAD_MACHINE.can("picked_up", "cancel")
    assert not LOAD_MACHINE.can("in_transit", "cancel")


def test_only_posted_loads_expire():
    assert LOAD_MACHINE.sources("expire") == frozenset({"posted"})


def test_shipment_exception_only_from_active_states():
    assert SHIPMENT_MACHINE.sources("report_exception") == frozenset(
        {"pending_pickup", "picked_up", "in_transit"}
    )
    assert not SHIPMENT_MACHINE.can("delivered", "report_exception")


@pytest.mark.parametrize("machine", [MATCH_MACHINE, LOAD_MACHINE, SHIPMENT_MACHINE])
def test_terminal_states_have_no_outgoing_edges(machine):
    for state in machine.terminal:
        assert not any(machine.can(state, event) for event in machine.events)


def test_machine_rejects_edge_out_of_terminal_state():
    with pytest.raises(ValueError, match="terminal state 'done'"):
        StateMachine(
            "broken",
            states=["open", "done"],
            initial="open",
            terminal=["done"],
            transitions={("done", "reopen"): "open"},
        )


def test_machine_rejects_unknown_states():
    with pytest.raises(ValueError, match="bad transition"):
        StateMachine(
            "broken",
            states=["open"],
            initial="open",
            transitions={("open", "close"): "closed"},
        )
