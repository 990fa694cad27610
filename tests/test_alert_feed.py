"""
Tests for the unified dashboard alert feed
"""
from datetime import datetime
from unittest import TestCase

from backend.models import BatchAlert, Severity, UnifiedAlert
from backend.utils.alert_feed import build_alert_feed
from backend.utils.batch_alerts import BatchAlerts
from tests.test_utils import TODAY, FakeSupabaseClient, TestDataFactory


def _batch(batch_number, days_until=None, days_expired=None, product_id="p1"):
    return BatchAlert(
        product_id=product_id,
        product_name="Coca Cola 500ml",
        batch_number=batch_number,
        quantity=6,
        expiration_date=TODAY,
        days_until_expiry=days_until,
        days_expired=days_expired,
        type="expired" if days_expired is not None else "expiring",
    )


class AlertFeedTests(TestCase):
    def setUp(self):
        self.now = datetime(2024, 6, 15, 9, 30)
        self.products = [
            TestDataFactory.product("p1", "Coca Cola 500ml", current_stock=5, min_stock=10),
            TestDataFactory.product("p2", "Galletas Soda", current_stock=40, min_stock=20),
        ]

    def test_ids_follow_natural_keys(self):
        feed = build_alert_feed(
            self.products, [_batch("L-2", days_until=3)], [_batch("L-1", days_expired=2)], now=self.now
        )
        self.assertEqual([a.id for a in feed.low_stock_alerts], ["lowstock-p1"])
        self.assertEqual([a.id for a in feed.expiring_alerts], ["expiring-batch-p1-L-2"])
        self.assertEqual([a.id for a in feed.expired_alerts], ["expired-batch-p1-L-1"])

    def test_severity_policy(self):
        feed = build_alert_feed(
            self.products,
            [_batch("L-7", days_until=7), _batch("L-8", days_until=8), _batch("L-X")],
            [_batch("L-1", days_expired=40)],
            now=self.now,
        )
        severities = {a.id: a.severity for a in feed.all_alerts}
        self.assertEqual(severities["lowstock-p1"], Severity.HIGH)
        self.assertEqual(severities["expiring-batch-p1-L-7"], Severity.HIGH)
        self.assertEqual(severities["expiring-batch-p1-L-8"], Severity.MEDIUM)
        self.assertEqual(severities["expiring-batch-p1-L-X"], Severity.MEDIUM)
        self.assertEqual(severities["expired-batch-p1-L-1"], Severity.HIGH)

    def test_messages(self):
        feed = build_alert_feed(
            self.products, [_batch("L-2", days_until=3), _batch("L-X")], [_batch("L-1", days_expired=2)], now=self.now
        )
        messages = [a.message for a in feed.all_alerts]
        self.assertIn("Stock bajo (5 unidades)", messages)
        self.assertIn("L-2 por vencer en 3 días (6 unidades)", messages)
        self.assertIn("L-X próximo a vencer (6 unidades)", messages)
        self.assertIn("L-1 vencido hace 2 días (6 unidades)", messages)

    def test_null_stock_reads_as_zero(self):
        products = [TestDataFactory.product("p4", "Agua 625ml", current_stock=None, min_stock=5)]
        feed = build_alert_feed(products, [], [], now=self.now)
        self.assertEqual([a.message for a in feed.low_stock_alerts], ["Stock bajo (0 unidades)"])

    def test_presentations_are_exclusive(self):
        feed = build_alert_feed(
            self.products, [_batch("L-2", days_until=3)], [_batch("L-1", days_expired=2)], now=self.now
        )
        self.assertEqual([a.id for a in feed.presentation(show_batches=False)], ["lowstock-p1"])
        self.assertEqual(
            [a.id for a in feed.presentation(show_batches=True)],
            ["expired-batch-p1-L-1", "expiring-batch-p1-L-2"],
        )

    def test_unread_count_covers_all_sources(self):
        external = [
            UnifiedAlert(id="ext-1", product_name="Agua", message="Sobre stock", severity="low",
                         created_at=self.now, is_read=False, type="over_stock"),
            UnifiedAlert(id="ext-2", product_name="Agua", message="Leída", severity="low",
                         created_at=self.now, is_read=True, type="over_stock"),
        ]
        feed = build_alert_feed(
            self.products, [_batch("L-2", days_until=3)], [_batch("L-1", days_expired=2)], external, now=self.now
        )
        self.assertEqual(feed.unread_count, 4)

    def test_recomputing_is_idempotent(self):
        client = FakeSupabaseClient(tables=TestDataFactory.inventory_tables())
        products = client.tables["products"]

        first = BatchAlerts(client)
        first.fetch_batch_alerts(today=TODAY)
        second = BatchAlerts(client)
        second.fetch_batch_alerts(today=TODAY)

        feed_a = build_alert_feed(products, first.expiring_batches, first.expired_batches)
        feed_b = build_alert_feed(products, second.expiring_batches, second.expired_batches)

        self.assertEqual(
            [(a.id, a.severity) for a in feed_a.all_alerts],
            [(a.id, a.severity) for a in feed_b.all_alerts],
        )
        self.assertEqual(len({a.id for a in feed_a.all_alerts}), len(feed_a.all_alerts))
