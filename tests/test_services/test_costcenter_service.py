import unittest
from datetime import date

from costcenter import service
from core.errors import ConflictError, NotFoundError, ValidationError
from tests.factories import (
    ADMIN,
    days,
    make_session,
    seed_assignment,
    seed_client,
    seed_cost_center,
    seed_employee,
)


class CostCenterServiceTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.db = make_session()
        self.client = seed_client(self.db)
        self.manager = seed_employee(self.db, self.client, "1010-0001", is_manager=True)
        self.worker = seed_employee(self.db, self.client, "1010-0002")
        self.db.commit()

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _payload(self, **overrides):
        payload = {
            "client_id": self.client.id,
            "code": " cc-100 ",
            "name": " Operations ",
            "responsible_id": self.manager.id,
            "valid_from": "2024-01-01",
        }
        payload.update(overrides)
        return payload

    def test_create_normalizes_code_and_name(self):
        obj = service.create_cost_center(self.db, ADMIN, self._payload())
        self.assertEqual(obj.code, "CC-100")
        self.assertEqual(obj.name, "Operations")
        self.assertEqual(obj.valid_from, date(2024, 1, 1))

    def test_code_unique_per_client(self):
        service.create_cost_center(self.db, ADMIN, self._payload())
        with self.assertRaises(ConflictError):
            service.create_cost_center(self.db, ADMIN, self._payload(code="CC-100"))

        other = seed_client(self.db, company_id="2020")
        other_manager = seed_employee(self.db, other, "2020-0001", is_manager=True)
        self.db.commit()
        obj = service.create_cost_center(
            self.db, ADMIN, self._payload(client_id=other.id, responsible_id=other_manager.id)
        )
        self.assertEqual(obj.code, "CC-100")

    def test_renaming_to_own_code_is_not_a_conflict(self):
        obj = service.create_cost_center(self.db, ADMIN, self._payload())
        same = service.update_cost_center(self.db, ADMIN, obj.id, {"code": "cc-100", "name": "Ops"})
        self.assertEqual(same.name, "Ops")

    def test_responsible_must_be_manager(self):
        with self.assertRaises(ValidationError) as cm:
            service.create_cost_center(self.db, ADMIN, self._payload(responsible_id=self.worker.id))
        self.assertEqual(cm.exception.message, "Responsible employee must be a manager.")

    def test_responsible_of_other_client_is_rejected(self):
        other = seed_client(self.db, company_id="2020")
        stranger = seed_employee(self.db, other, "2020-0001", is_manager=True)
        self.db.commit()
        with self.assertRaises(ValidationError) as cm:
            service.create_cost_center(self.db, ADMIN, self._payload(responsible_id=stranger.id))
        self.assertEqual(cm.exception.code, "REFERENTIAL_INTEGRITY")

    def test_missing_responsible_is_404(self):
        with self.assertRaises(NotFoundError):
            service.create_cost_center(self.db, ADMIN, self._payload(responsible_id=999))

    def test_window_must_be_ordered(self):
        with self.assertRaises(ValidationError):
            service.create_cost_center(self.db, ADMIN, self._payload(valid_to="2023-12-31"))
        obj = service.create_cost_center(self.db, ADMIN, self._payload(valid_to="2024-01-01"))
        with self.assertRaises(ValidationError):
            service.update_cost_center(self.db, ADMIN, obj.id, {"valid_from": "2024-02-01"})

    def test_cannot_move_to_other_client(self):
        other = seed_client(self.db, company_id="2020")
        self.db.commit()
        obj = service.create_cost_center(self.db, ADMIN, self._payload())
        with self.assertRaises(ValidationError):
            service.update_cost_center(self.db, ADMIN, obj.id, {"client_id": other.id})

    def test_delete_blocked_by_active_assignment(self):
        cc = seed_cost_center(self.db, self.client, self.manager)
        seed_assignment(self.db, self.worker, cc, days(-1))
        self.db.commit()
        with self.assertRaises(ConflictError) as cm:
            service.delete_cost_center(self.db, ADMIN, cc.id)
        self.assertIn("1 active assignment", cm.exception.message)

    def test_delete_blocked_by_assigned_employee(self):
        cc = seed_cost_center(self.db, self.client, self.manager)
        self.worker.cost_center_id = cc.id
        self.db.commit()
        with self.assertRaises(ConflictError):
            service.delete_cost_center(self.db, ADMIN, cc.id)

    def test_delete_drops_historical_assignments(self):
        cc = seed_cost_center(self.db, self.client, self.manager)
        seed_assignment(self.db, self.worker, cc, date(2020, 1, 1), date(2020, 12, 31))
        self.db.commit()
        self.assertEqual(service.cost_center_delete_preview(self.db, ADMIN, cc.id)["assignment_count"], 1)

        service.delete_cost_center(self.db, ADMIN, cc.id)
        self.assertIsNone(service.get_cost_center(self.db, ADMIN, cc.id))
        self.assertEqual(service.count_active_assignments(self.db, cc.id), 0)


if __name__ == "__main__":
    unittest.main()
