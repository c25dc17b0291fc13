"""Explicit transition tables for the Match, Load and Shipment lifecycles.

Each table maps ``(state, event) -> next state``. Model methods consult
them before writing a status, so an illegal move is rejected in one place
instead of being scattered across guard clauses.
"""

from matching.services.exceptions import InvalidStateTransition


class StateMachine:
    def __init__(self, name, states, initial, transitions, terminal=()):
        self.name = name
        self.states = frozenset(states)
        self.initial = initial
        self.terminal = frozenset(terminal)
        self._table = {}

        if initial not in self.states:
            raise ValueError(f"{name}: unknown initial state {initial!r}")
        for (source, event), target in transitions.items():
            if source not in self.states or target not in self.states:
                raise ValueError(f"{name}: bad transition {source!r} -{event}-> {target!r}")
            if source in self.terminal:
                raise ValueError(f"{name}: terminal state {source!r} has outgoing edge")
            self._table[(source, event)] = target

    @property
    def events(self):
        return frozenset(event for _, event in self._table)

    def can(self, state, event):
        return (state, event) in self._table

    def next_state(self, state, event):
        try:
            return self._table[(state, event)]
        except KeyError:
            raise InvalidStateTransition(self.name, state, event) from None

    def sources(self, event):
        return frozenset(s for (s, e) in self._table if e == event)


def _edges(event, sources, target):
    return {(source, event): target for source in sources}


MATCH_MACHINE = StateMachine(
    "match",
    states=["pending", "offered", "accepted", "rejected", "expired", "cancelled"],
    initial="pending",
    terminal=["rejected", "expired", "cancelled"],
    transitions={
        **_edges("make_offer", ["pending"], "offered"),
        **_edges("accept_offer", ["pending", "offered"], "accepted"),
        **_edges("reject_offer", ["pending", "offered"], "rejected"),
        **_edges("expire", ["pending", "offered"], "expired"),
        **_edges("cancel", ["pending", "offered", "accepted"], "cancelled"),
    },
)

LOAD_MACHINE = StateMachine(
    "load",
    states=[
        "posted",
        "matched",
        "accepted",
        "picked_up",
        "in_transit",
        "delivered",
        "cancelled",
        "expired",
    ],
    initial="posted",
    terminal=["delivered", "cancelled", "expired"],
    transitions={
        **_edges("match_with_carrier", ["posted"], "matched"),
        **_edges("accept_by_carrier", ["posted", "matched"], "accepted"),
        **_edges("pickup", ["accepted"], "picked_up"),
        **_edges("start_transit", ["picked_up"], "in_transit"),
        **_edges("deliver", ["in_transit"], "delivered"),
        **_edges("cancel", ["posted", "matched", "accepted"], "cancelled"),
        **_edges("expire", ["posted"], "expired"),
    },
)

SHIPMENT_MACHINE = StateMachine(
    "shipment",
    states=["pending_pickup", "picked_up", "in_transit", "delivered", "exception"],
    initial="pending_pickup",
    terminal=["delivered", "exception"],
    transitions={
        **_edges("pickup", ["pending_pickup"], "picked_up"),
        **_edges("start_transit", ["picked_up"], "in_transit"),
        **_edges("deliver", ["in_transit"], "delivered"),
        **_edges(
            "report_exception",
            ["pending_pickup", "picked_up", "in_transit"],
            "exception",
        ),
    },
)
