import unittest
from datetime import date

from assignment import service
from assignment.models import Assignment
from core.errors import NotFoundError, UnauthorizedCompanyError, ValidationError
from tests.factories import (
    ADMIN,
    days,
    editor,
    make_session,
    seed_assignment,
    seed_client,
    seed_cost_center,
    seed_employee,
)


class AssignmentServiceTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.db = make_session()
        self.client = seed_client(self.db)
        self.manager = seed_employee(self.db, self.client, "1010-0001", is_manager=True)
        self.worker = seed_employee(self.db, self.client, "1010-0002")
        self.cc = seed_cost_center(self.db, self.client, self.manager, code="CC1")
        self.cc2 = seed_cost_center(self.db, self.client, self.manager, code="CC2")
        self.closing = seed_cost_center(
            self.db, self.client, self.manager, code="OLD", valid_to=date(2030, 12, 31)
        )
        self.db.commit()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _payload(self, **overrides):
        payload = {
            "client_id": self.client.id,
            "employee_id": self.worker.id,
            "cost_center_id": self.cc.id,
            "valid_from": date(2024, 1, 1),
        }
        payload.update(overrides)
        return payload

    def test_create_defaults_to_not_responsible(self):
        obj = service.create_assignment(self.db, ADMIN, self._payload())
        self.assertFalse(obj.is_responsible)
        self.assertIsNone(obj.valid_to)

    def test_required_fields(self):
        with self.assertRaises(ValidationError) as cm:
            service.create_assignment(self.db, ADMIN, self._payload(valid_from=None))
        self.assertEqual(cm.exception.message, "validFrom is required.")

    def test_window_must_be_ordered(self):
        with self.assertRaises(ValidationError):
            service.create_assignment(
                self.db, ADMIN, self._payload(valid_from=date(2024, 5, 1), valid_to=date(2024, 4, 1))
            )

    def test_must_fit_inside_cost_center_validity(self):
        cases = [
            (self._payload(valid_from=date(2019, 12, 31)), "cannot start before"),
            (self._payload(cost_center_id=self.closing.id), "must have an end date"),
            (self._payload(cost_center_id=self.closing.id, valid_to=date(2031, 1, 1)), "cannot end after"),
        ]
        for payload, fragment in cases:
            with self.subTest(fragment=fragment):
                with self.assertRaises(ValidationError) as cm:
                    service.create_assignment(self.db, ADMIN, payload)
                self.assertIn(fragment, cm.exception.message)

        ok = service.create_assignment(
            self.db, ADMIN, self._payload(cost_center_id=self.closing.id, valid_to=date(2030, 12, 31))
        )
        self.assertEqual(ok.valid_to, date(2030, 12, 31))

    def test_only_managers_can_be_responsible(self):
        with self.assertRaises(ValidationError) as cm:
            service.create_assignment(self.db, ADMIN, self._payload(is_responsible=True))
        self.assertEqual(cm.exception.message, "Only managers can be marked as responsible for a cost center.")

    def test_non_manager_overlap_is_rejected(self):
        seed_assignment(self.db, self.worker, self.cc, date(2024, 1, 1), date(2024, 6, 30))
        self.db.commit()
        with self.assertRaises(ValidationError) as cm:
            service.create_assignment(self.db, ADMIN, self._payload(cost_center_id=self.cc2.id, valid_from=date(2024, 6, 30)))
        self.assertIn("2024-01-01 - 2024-06-30", cm.exception.message)

        # touching the day after is fine
        ok = service.create_assignment(
            self.db, ADMIN, self._payload(cost_center_id=self.cc2.id, valid_from=date(2024, 7, 1))
        )
        self.assertIsNotNone(ok.id)

    def test_manager_overlap_is_allowed(self):
        first = service.create_assignment(self.db, ADMIN, self._payload(employee_id=self.manager.id))
        second = service.create_assignment(
            self.db, ADMIN, self._payload(employee_id=self.manager.id, cost_center_id=self.cc2.id)
        )
        self.assertNotEqual(first.id, second.id)

    def test_update_does_not_collide_with_itself(self):
        obj = service.create_assignment(self.db, ADMIN, self._payload())
        updated = service.update_assignment(self.db, ADMIN, obj.id, {"valid_to": date(2024, 12, 31)})
        self.assertEqual(updated.valid_to, date(2024, 12, 31))

    def test_cannot_move_to_other_client(self):
        other = seed_client(self.db, company_id="2020")
        self.db.commit()
        obj = service.create_assignment(self.db, ADMIN, self._payload())
        with self.assertRaises(ValidationError):
            service.update_assignment(self.db, ADMIN, obj.id, {"client_id": other.id})

    def test_employee_of_other_client_is_rejected(self):
        other = seed_client(self.db, company_id="2020")
        stranger = seed_employee(self.db, other, "2020-0001")
        self.db.commit()
        with self.assertRaises(ValidationError) as cm:
            service.create_assignment(self.db, ADMIN, self._payload(employee_id=stranger.id))
        self.assertEqual(cm.exception.code, "REFERENTIAL_INTEGRITY")

    def test_unauthorized_company(self):
        with self.assertRaises(UnauthorizedCompanyError):
            service.create_assignment(self.db, editor("2020"), self._payload())
        obj = service.create_assignment(self.db, editor("1010"), self._payload())
        self.assertEqual(obj.client_id, self.client.id)

    def test_delete_missing_is_404(self):
        with self.assertRaises(NotFoundError):
            service.delete_assignment(self.db, ADMIN, 12345)

    def test_list_filters_by_employee(self):
        seed_assignment(self.db, self.manager, self.cc, days(-3))
        service.create_assignment(self.db, ADMIN, self._payload())
        rows = service.list_assignments(self.db, ADMIN, employee_id=self.worker.id)
        self.assertEqual([r.employee_id for r in rows], [self.worker.id])
        self.assertEqual(len(self.db.query(Assignment).all()), 2)


if __name__ == "__main__":
    unittest.main()
