from __future__ import annotations

from dataclasses import fields

from attendance_registry.attendance.transaction import MySQLTransactionFactory
from attendance_registry.container import Container, build_container
from attendance_registry.database.connection import DatabaseConnection

DB_CONFIG = {"host": "db", "port": 3306, "user": "svc", "password": "pw", "database": "attendance"}


def test_build_container_wires_services_without_connecting(monkeypatch):
    monkeypatch.setattr(DatabaseConnection, "_instance", None)

    container = build_container(db_config=DB_CONFIG)

    assert isinstance(container.transactions, MySQLTransactionFactory)
    assert container.attendance_service._transactions is container.transactions
    assert container.attendance_service._flags is container.feature_flags
    assert [f.name for f in fields(Container)] == [
        "transactions",
        "feature_flags",
        "attendance_service",
        "leave_sync",
    ]
