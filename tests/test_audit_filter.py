"""
Tests for the audit log filter pipeline and audit repository
"""
from datetime import datetime
from io import BytesIO
from unittest import TestCase

import pandas as pd

from backend.crud import AuditLogRepository
from backend.models import AuditEntry, AuditEntryCreate
from backend.utils.audit_filter import (
    count_today,
    distinct_values,
    entity_stats,
    export_audit_xlsx,
    filter_audit_entries,
)
from backend.views import AuditLogView
from tests.test_utils import FakeSupabaseClient, TestDataFactory, utc


class FilterAuditEntriesTests(TestCase):
    def setUp(self):
        self.now = utc(2024, 6, 15, 12, 0)
        rows = TestDataFactory.audit_rows(self.now)
        # Orden de origen arbitrario: el filtro debe reordenar siempre
        self.entries = [AuditEntry.from_db(r) for r in reversed(rows)]

    def ids(self, entries):
        return [e.id for e in entries]

    def test_search_and_entity_compose(self):
        result = filter_audit_entries(self.entries, search="coca", entity="products", now=self.now)
        self.assertEqual(self.ids(result), ["a1", "a2", "a6"])

    def test_search_is_case_insensitive_across_fields(self):
        self.assertEqual(self.ids(filter_audit_entries(self.entries, search="MARIA", now=self.now)),
                         ["a8", "a2", "a3", "a9"])
        self.assertEqual(self.ids(filter_audit_entries(self.entries, search="logout", now=self.now)), ["a7"])
        self.assertEqual(self.ids(filter_audit_entries(self.entries, search="CASH", now=self.now)), ["a8"])

    def test_no_filters_sorts_descending(self):
        result = filter_audit_entries(self.entries, now=self.now)
        self.assertEqual(self.ids(result), ["a7", "a1", "a8", "a2", "a3", "a9", "a4", "a5", "a6", "a10"])

    def test_equality_filters(self):
        result = filter_audit_entries(self.entries, action="SALE", username="carlos", now=self.now)
        self.assertEqual(self.ids(result), ["a10"])

    def test_date_windows(self):
        today = filter_audit_entries(self.entries, date_range="today", now=self.now)
        week = filter_audit_entries(self.entries, date_range="week", now=self.now)
        month = filter_audit_entries(self.entries, date_range="month", now=self.now)

        self.assertEqual(self.ids(today), ["a7", "a1"])
        self.assertEqual(self.ids(week), ["a7", "a1", "a8", "a2", "a3", "a9"])
        self.assertEqual(len(month), 8)
        self.assertNotIn("a6", self.ids(month))

    def test_invalid_date_range(self):
        with self.assertRaises(ValueError):
            filter_audit_entries(self.entries, date_range="year", now=self.now)

    def test_source_list_is_not_mutated(self):
        before = self.ids(self.entries)
        filter_audit_entries(self.entries, search="coca", now=self.now)
        self.assertEqual(self.ids(self.entries), before)


class AuditStatsTests(TestCase):
    def setUp(self):
        self.now = utc(2024, 6, 15, 12, 0)
        self.entries = [AuditEntry.from_db(r) for r in TestDataFactory.audit_rows(self.now)]

    def test_entity_stats(self):
        stats = {s["entity"]: s["count"] for s in entity_stats(self.entries)}
        self.assertEqual(stats, {"products": 4, "sales": 2, "auth": 2, "cash": 1, "users": 1})

    def test_count_today(self):
        self.assertEqual(count_today(self.entries, now=self.now), 2)

    def test_distinct_values(self):
        self.assertEqual(distinct_values(self.entries, "username"), ["admin", "carlos", "maria"])

    def test_export_xlsx(self):
        content = export_audit_xlsx(self.entries[:3])
        df = pd.read_excel(BytesIO(content))
        self.assertEqual(list(df.columns), ["Fecha", "Usuario", "Acción", "Entidad", "Nombre", "Detalles"])
        self.assertEqual(len(df), 3)

    def test_export_empty(self):
        df = pd.read_excel(BytesIO(export_audit_xlsx([])))
        self.assertEqual(len(df), 0)


class AuditRepositoryTests(TestCase):
    def setUp(self):
        self.now = datetime.now().astimezone()
        self.client = FakeSupabaseClient(tables={"audit_logs": TestDataFactory.audit_rows(self.now)})

    def test_fetch_orders_newest_first_and_limits(self):
        entries = AuditLogRepository(self.client).fetch_audit_entries(limit=3)
        self.assertEqual([e.id for e in entries], ["a7", "a1", "a8"])

    def test_add_entry_maps_columns(self):
        created = AuditLogRepository(self.client).add_audit_entry(AuditEntryCreate(
            username="admin", action="SUPPLIER_CREATE", entity="suppliers",
            entity_id="s1", entity_name="Backus", details='Proveedor "Backus" creado',
        ))
        stored = self.client.tables["audit_logs"][-1]
        self.assertEqual(stored["record_id"], "s1")
        self.assertEqual(stored["table_name"], "suppliers")
        self.assertEqual(created.entity_id, "s1")

    def test_view_reports_error_without_raising(self):
        self.client.fail_table("audit_logs")
        view = AuditLogView(self.client)
        view.load()
        self.assertEqual(view.entries, [])
        self.assertIn("audit_logs", view.error)
        self.assertFalse(view.loading)

    def test_view_rederives_filtered_entries(self):
        view = AuditLogView(self.client)
        view.load()
        view.entity = "auth"
        self.assertEqual([e.id for e in view.filtered_entries], ["a7", "a5"])
        view.search = "carlos"
        self.assertEqual([e.id for e in view.filtered_entries], ["a5"])
        view.date_range = "week"
        self.assertEqual(view.filtered_entries, [])
