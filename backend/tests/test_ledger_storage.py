"""Tests for the SQLAlchemy ledger store's transaction modes."""

import threading

from sqlalchemy import select

from teahouse.db import order_utils
from teahouse.db.models import Order


def test_read_session_sees_committed_state_while_writer_open(storage, staff, place_order):
    order = place_order()
    with storage.transaction() as writer:
        order_utils.advance_status(writer, staff["alice"], order["id"], "prepared")

        reader = storage.session()
        try:
            seen = order_utils.get_order(reader, staff["bob"], order["id"])
        finally:
            reader.close()
        assert seen["status"] == "taken"

    with storage.transaction() as session:
        assert session.get(Order, order["id"]).status == "prepared"


def test_read_from_other_thread_does_not_wait_for_writer(storage, staff, place_order):
    order = place_order()
    seen = []
    finished = threading.Event()

    def read():
        reader = storage.session()
        try:
            seen.append(reader.execute(select(Order.status).where(Order.id == order["id"])).scalar_one())
        finally:
            reader.close()
            finished.set()

    with storage.transaction() as writer:
        order_utils.advance_status(writer, staff["alice"], order["id"], "delivered")
        thread = threading.Thread(target=read)
        thread.start()
        # a reader queued behind the write lock would still be waiting here
        assert finished.wait(timeout=5)
        thread.join()

    assert seen == ["taken"]


def test_transactions_begin_immediate(storage):
    with storage.transaction() as session:
        assert session.connection().get_execution_options().get("sqlite_immediate") is True
    reader = storage.session()
    try:
        assert not reader.connection().get_execution_options().get("sqlite_immediate")
    finally:
        reader.close()
