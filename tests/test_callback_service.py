import unittest
from decimal import Decimal

import httpx

from paybridge.db import SessionLocal
from paybridge.errors import PersistenceError
from paybridge.models import OrderStatus
from paybridge.services.callback_service import CallbackProcessor, CallbackResult
from paybridge.services.notifier import CompletionNotifier
from paybridge.storage import SqlOrderRepository

from support import SECRET, FakeNotifier, RecordingTransport, order_row, reset_db, signed


def completion_callback(**overrides):
    payload = {
        "trade_id": "T1",
        "order_id": "ORD1001",
        "amount": 10.5,
        "actual_amount": "10.50",
        "token": "tok1",
        "block_transaction_id": "0xabc",
        "status": 2,
    }
    payload.update(overrides)
    return signed(payload)


class FailingWriteRepository(SqlOrderRepository):
    def update_order(self, order_id, **kwargs):
        raise PersistenceError("更新支付记录失败")


class CallbackTestCase(unittest.TestCase):
    def setUp(self):
        reset_db()
        self.db = SessionLocal()
        self.repo = SqlOrderRepository(self.db)
        self.repo.create_order(
            order_id="ORD1001",
            trade_id="T1",
            amount=Decimal("10.50"),
            actual_amount="10.50",
            trade_type="usdt.trc20",
            user_id=None,
            payment_url="https://pay/T1",
            token="tok1",
            expiration_time=None,
        )
        self.notifier = FakeNotifier()
        self.processor = CallbackProcessor(self.repo, self.notifier, SECRET)

    def tearDown(self):
        self.db.close()


class TestSignatureGate(CallbackTestCase):
    def test_bad_signature_never_touches_order(self):
        before = order_row("ORD1001")
        payload = completion_callback()
        payload["signature"] = "0" * 32

        outcome = self.processor.handle(payload)

        self.assertEqual(outcome.result, CallbackResult.REJECTED)
        self.assertEqual(outcome.reason, "bad_signature")
        self.assertFalse(outcome.acknowledged)
        self.assertEqual(order_row("ORD1001"), before)
        self.assertEqual(self.notifier.calls, [])

    def test_field_changed_after_signing_is_rejected(self):
        before = order_row("ORD1001")
        payload = completion_callback()
        payload["block_transaction_id"] = "0xevil"

        self.assertEqual(self.processor.handle(payload).result, CallbackResult.REJECTED)
        self.assertEqual(order_row("ORD1001"), before)

    def test_missing_signature(self):
        payload = completion_callback()
        del payload["signature"]
        self.assertEqual(self.processor.handle(payload).result, CallbackResult.REJECTED)

    def test_non_object_body(self):
        outcome = self.processor.handle(["not", "a", "dict"])
        self.assertEqual(outcome.result, CallbackResult.REJECTED)
        self.assertEqual(outcome.reason, "malformed_body")

    def test_signed_but_without_status(self):
        payload = completion_callback()
        del payload["status"]
        payload = signed({k: v for k, v in payload.items() if k != "signature"})
        self.assertEqual(self.processor.handle(payload).result, CallbackResult.REJECTED)

    def test_fractional_status_is_rejected(self):
        before = order_row("ORD1001")

        for status in (2.5, "2.5", float("inf")):
            outcome = self.processor.handle(completion_callback(status=status))
            self.assertEqual(outcome.result, CallbackResult.REJECTED, status)
            self.assertEqual(outcome.reason, "malformed_body", status)

        self.assertEqual(order_row("ORD1001"), before)
        self.assertEqual(self.notifier.calls, [])

    def test_integral_float_status_is_accepted(self):
        outcome = self.processor.handle(completion_callback(status=2.0))
        self.assertEqual(outcome.result, CallbackResult.PROCESSED)
        self.assertEqual(self.repo.find_by_order_id("ORD1001").status, OrderStatus.COMPLETED)

    def test_missing_secret_is_a_processing_failure(self):
        processor = CallbackProcessor(self.repo, self.notifier, None)
        outcome = processor.handle(completion_callback())
        self.assertEqual(outcome.result, CallbackResult.FAILED)
        self.assertEqual(outcome.reason, "gateway_not_configured")


class TestTransitions(CallbackTestCase):
    def test_completion_updates_order_and_notifies_once(self):
        outcome = self.processor.handle(completion_callback())

        self.assertEqual(outcome.result, CallbackResult.PROCESSED)
        self.assertTrue(outcome.notified)
        order = self.repo.find_by_order_id("ORD1001")
        self.assertEqual(order.status, OrderStatus.COMPLETED)
        self.assertEqual(order.block_transaction_id, "0xabc")
        self.assertEqual(order.trade_id, "T1")
        self.assertEqual(
            self.notifier.calls,
            [{
                "order_id": "ORD1001",
                "trade_id": "T1",
                "amount": 10.5,
                "actual_amount": "10.50",
                "status": 2,
                "block_transaction_id": "0xabc",
            }],
        )

    def test_replay_is_idempotent_and_does_not_renotify(self):
        payload = completion_callback()
        self.processor.handle(dict(payload))
        after_first = order_row("ORD1001")

        outcome = self.processor.handle(dict(payload))

        self.assertEqual(outcome.result, CallbackResult.DUPLICATE)
        self.assertTrue(outcome.acknowledged)
        self.assertEqual(order_row("ORD1001"), after_first)
        self.assertEqual(len(self.notifier.calls), 1)

    def test_completed_order_does_not_go_back_to_created(self):
        self.processor.handle(completion_callback())
        after_completion = order_row("ORD1001")

        outcome = self.processor.handle(completion_callback(status=1, block_transaction_id=""))

        self.assertEqual(outcome.result, CallbackResult.IGNORED)
        self.assertEqual(outcome.reason, "terminal_conflict")
        self.assertTrue(outcome.acknowledged)
        self.assertEqual(order_row("ORD1001"), after_completion)

    def test_late_expiry_after_completion_is_ignored(self):
        self.processor.handle(completion_callback())
        outcome = self.processor.handle(completion_callback(status=3))
        self.assertEqual(outcome.result, CallbackResult.IGNORED)
        self.assertEqual(self.repo.find_by_order_id("ORD1001").status, OrderStatus.COMPLETED)

    def test_expiry_does_not_notify(self):
        outcome = self.processor.handle(completion_callback(status=3, block_transaction_id=""))
        self.assertEqual(outcome.result, CallbackResult.PROCESSED)
        self.assertFalse(outcome.notified)
        self.assertEqual(self.notifier.calls, [])
        self.assertEqual(self.repo.find_by_order_id("ORD1001").status, OrderStatus.EXPIRED)

    def test_waiting_callback_refreshes_quoted_amount(self):
        outcome = self.processor.handle(
            completion_callback(status=1, actual_amount="10.52", block_transaction_id="")
        )
        self.assertEqual(outcome.result, CallbackResult.PROCESSED)
        self.assertEqual(self.repo.find_by_order_id("ORD1001").actual_amount, "10.52")
        self.assertEqual(self.notifier.calls, [])

    def test_unknown_order_is_acknowledged_without_write(self):
        outcome = self.processor.handle(completion_callback(order_id="NOPE"))
        self.assertEqual(outcome.result, CallbackResult.UNKNOWN_ORDER)
        self.assertTrue(outcome.acknowledged)
        self.assertEqual(self.notifier.calls, [])

    def test_trade_id_is_never_reassigned(self):
        before = order_row("ORD1001")
        outcome = self.processor.handle(completion_callback(trade_id="T999"))
        self.assertEqual(outcome.result, CallbackResult.IGNORED)
        self.assertEqual(outcome.reason, "trade_mismatch")
        self.assertEqual(order_row("ORD1001"), before)


class TestFailureHandling(CallbackTestCase):
    def test_notifier_crash_does_not_change_outcome(self):
        processor = CallbackProcessor(self.repo, FakeNotifier(exc=RuntimeError("boom")), SECRET)
        outcome = processor.handle(completion_callback())
        self.assertEqual(outcome.result, CallbackResult.PROCESSED)
        self.assertTrue(outcome.acknowledged)

    def test_notifier_network_failure_is_swallowed(self):
        def refuse(request):
            raise httpx.ConnectError("down", request=request)

        transport = RecordingTransport(refuse)
        notifier = CompletionNotifier("https://manager.test/notify", http_client=transport.client())
        processor = CallbackProcessor(self.repo, notifier, SECRET)

        outcome = processor.handle(completion_callback())

        self.assertEqual(outcome.result, CallbackResult.PROCESSED)
        self.assertEqual(len(transport.requests), 1)

    def test_write_failure_is_reported(self):
        processor = CallbackProcessor(FailingWriteRepository(self.db), self.notifier, SECRET)
        before = order_row("ORD1001")

        outcome = processor.handle(completion_callback())

        self.assertEqual(outcome.result, CallbackResult.FAILED)
        self.assertEqual(outcome.reason, "persistence_error")
        self.assertEqual(order_row("ORD1001"), before)
        self.assertEqual(self.notifier.calls, [])


class TestCompletionNotifier(unittest.TestCase):
    def test_posts_payload_once(self):
        transport = RecordingTransport(lambda r: httpx.Response(200, text="ok"))
        notifier = CompletionNotifier("https://manager.test/notify", http_client=transport.client())

        self.assertTrue(notifier.notify_completion({"order_id": "ORD1", "status": 2}))
        self.assertEqual(transport.json_bodies(), [{"order_id": "ORD1", "status": 2}])

    def test_error_status_is_not_retried(self):
        transport = RecordingTransport(lambda r: httpx.Response(503))
        notifier = CompletionNotifier("https://manager.test/notify", http_client=transport.client())

        self.assertFalse(notifier.notify_completion({"order_id": "ORD1"}))
        self.assertEqual(len(transport.requests), 1)

    def test_missing_url_skips(self):
        self.assertFalse(CompletionNotifier(None).notify_completion({"order_id": "ORD1"}))


if __name__ == "__main__":
    unittest.main()
