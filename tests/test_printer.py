from __future__ import annotations

import pytest

from kitchen_screen.broadcast import TransportFailure
from kitchen_screen.models import Order
from kitchen_screen.printer import TicketPrinter, ticket_lines

from conftest import make_draft


class TestTicketLines:
    def test_one_line_per_item(self, store):
        order = store.submit(make_draft(cart={"Борщ": 1, "Хлеб": 2}))
        assert ticket_lines(order) == ["Борщ x1", "Хлеб x2"]


class TestTicketPrinter:
    def test_first_snapshot_only_primes(self, store, channel):
        store.submit(make_draft("old"))
        printed: list[str] = []

        channel.subscribe(TicketPrinter(lambda order: printed.append(order.label)))
        channel.flush()

        assert printed == []

    def test_new_orders_are_printed_once(self, store, channel, clock):
        printed: list[str] = []
        channel.subscribe(TicketPrinter(lambda order: printed.append(order.label)))
        channel.flush()

        store.submit(make_draft("A"))
        clock.advance(1000)
        store.submit(make_draft("B"))
        channel.flush()

        assert printed == ["A", "B"]

    def test_failures_are_reported(self, store):
        def fail(order: Order) -> None:
            raise TransportFailure(f"paper out for {order.label}")

        printer = TicketPrinter(fail)
        printer(store.versioned_snapshot())
        store.submit(make_draft("A"))

        with pytest.raises(TransportFailure, match="paper out for A"):
            printer(store.versioned_snapshot())

    def test_failed_print_does_not_stop_others(self, store, clock):
        printed: list[str] = []

        def flaky(order: Order) -> None:
            if order.label == "A":
                raise TransportFailure("jam")
            printed.append(order.label)

        printer = TicketPrinter(flaky)
        printer(store.versioned_snapshot())
        store.submit(make_draft("A"))
        clock.advance(1000)
        store.submit(make_draft("B"))

        with pytest.raises(TransportFailure):
            printer(store.versioned_snapshot())
        assert printed == ["B"]
