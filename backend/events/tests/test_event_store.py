from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.utils import timezone

from accounts.models import Company, CompanyMembership
from events.emitter import emit_event_no_actor, get_aggregate_events
from events.models import BusinessEvent
from events.types import (
    AccountCreatedData,
    EventTypes,
    InvalidEventPayload,
    validate_event_payload,
)
from events.verification import find_sequence_gaps, full_integrity_check, get_integrity_summary


def _account_data(account_id: str = "A-1") -> dict:
    return {
        "account_public_id": account_id,
        "code": "1-1001",
        "name": "Kas",
        "account_type": "cash_bank",
        "normal_balance": "DEBIT",
    }


class EventTestCase(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(email="u1@test.com", password="pass12345", name="U1")
        self.company = Company.objects.create(name="C1", slug="c1")
        CompanyMembership.objects.create(
            user=self.user,
            company=self.company,
            role=CompanyMembership.Role.ADMIN,
        )

    def _emit(self, key: str, account_id: str = "A-1", event_type=EventTypes.ACCOUNT_CREATED, data=None):
        return emit_event_no_actor(
            company=self.company,
            user=self.user,
            event_type=event_type,
            aggregate_type="Account",
            aggregate_id=account_id,
            data=data if data is not None else _account_data(account_id),
            idempotency_key=key,
            occurred_at=timezone.now(),
        )


class TestEventEmitter(EventTestCase):
    def test_idempotency_returns_same_event(self):
        e1 = self._emit("k-1")
        e2 = self._emit("k-1")
        self.assertEqual(e1.id, e2.id)
        self.assertEqual(BusinessEvent.objects.filter(company=self.company).count(), 1)

    def test_company_sequence_monotonic(self):
        events = [self._emit(f"k-{i}", f"A-{i}") for i in range(5)]
        seqs = [e.company_sequence for e in events]
        self.assertEqual(seqs, [1, 2, 3, 4, 5])

    def test_aggregate_sequence_increments(self):
        e1 = self._emit("k-a1", "1")
        e2 = self._emit(
            "k-a2",
            "1",
            event_type=EventTypes.ACCOUNT_UPDATED,
            data={"account_public_id": "1", "changes": {"name": {"old": "Kas", "new": "Kas Toko"}}},
        )
        self.assertEqual(e1.sequence, 1)
        self.assertEqual(e2.sequence, 2)
        self.assertEqual([e.pk for e in get_aggregate_events(self.company, "Account", "1")], [e1.pk, e2.pk])

    def test_events_are_immutable(self):
        event = self._emit("k-1")
        with self.assertRaises(ValueError):
            event.save()
        with self.assertRaises(ValueError):
            event.delete()

    def test_system_events_are_tagged(self):
        event = self._emit("k-1")
        self.assertEqual(event.origin, BusinessEvent.EventOrigin.SYSTEM)


class TestEventPayloadValidation(EventTestCase):
    def test_valid_payload_passes(self):
        validate_event_payload(EventTypes.ACCOUNT_CREATED, _account_data())

    def test_missing_required_field_raises(self):
        with self.assertRaises(InvalidEventPayload) as ctx:
            validate_event_payload(EventTypes.ACCOUNT_CREATED, {"account_public_id": "A-1", "code": "1-1001"})

        self.assertIn("name", str(ctx.exception))
        self.assertEqual(ctx.exception.event_type, EventTypes.ACCOUNT_CREATED)

    def test_unexpected_field_raises(self):
        data = {**_account_data(), "is_header": False}
        with self.assertRaises(InvalidEventPayload) as ctx:
            validate_event_payload(EventTypes.ACCOUNT_CREATED, data)
        self.assertIn("unexpected", str(ctx.exception).lower())

    def test_unknown_account_type_raises(self):
        data = {**_account_data(), "account_type": "ASSET"}
        with self.assertRaises(InvalidEventPayload) as ctx:
            validate_event_payload(EventTypes.ACCOUNT_CREATED, data)
        self.assertIn("account_type", str(ctx.exception))

    def test_decimal_fields_inside_lines_are_checked(self):
        with self.assertRaises(InvalidEventPayload) as ctx:
            validate_event_payload(
                EventTypes.STOCK_MOVED,
                {
                    "movement_public_id": "m-1",
                    "product_public_id": "p-1",
                    "warehouse_public_id": "w-1",
                    "quantity": "ten",
                    "movement_reason": "pos_sale",
                },
            )
        self.assertIn("quantity", str(ctx.exception))

    def test_emit_with_dataclass_instance(self):
        data = AccountCreatedData(
            account_public_id="A-DC-1",
            code="1-1100",
            name="Bank BCA",
            account_type="cash_bank",
            normal_balance="DEBIT",
        )
        event = self._emit("dc-test-1", "A-DC-1", data=data)
        self.assertEqual(event.data["account_public_id"], "A-DC-1")
        self.assertEqual(event.data["name"], "Bank BCA")

    @override_settings(DISABLE_EVENT_VALIDATION=False)
    def test_emit_invalid_payload_raises(self):
        with self.assertRaises(InvalidEventPayload):
            self._emit("bad-payload-1", "BAD", data={"invalid": "payload"})

    def test_unregistered_event_type_raises(self):
        with self.assertRaises(ValueError) as ctx:
            validate_event_payload("unknown.event.type", {"any": "data"})
        self.assertIn("No schema registered", str(ctx.exception))

    def test_optional_fields_accept_none(self):
        validate_event_payload(EventTypes.ACCOUNT_CREATED, {**_account_data(), "parent_public_id": None})


class TestStreamIntegrity(EventTestCase):
    def test_clean_stream(self):
        for i in range(3):
            self._emit(f"k-{i}", f"A-{i}")

        report = full_integrity_check(self.company)

        self.assertTrue(report["is_valid"])
        self.assertEqual(report["total_events"], 3)
        self.assertEqual(report["sequence_gaps"], [])

    def test_removed_event_shows_as_gap(self):
        events = [self._emit(f"k-{i}", f"A-{i}") for i in range(5)]
        # queryset delete bypasses the model's immutability guard
        BusinessEvent.objects.filter(pk__in=[events[1].pk, events[2].pk]).delete()

        self.assertEqual(find_sequence_gaps(self.company), [(2, 3)])
        summary = get_integrity_summary(self.company)
        self.assertTrue(summary["has_potential_gaps"])
        self.assertEqual(summary["counter_sequence"], 5)
        self.assertFalse(full_integrity_check(self.company)["is_valid"])
