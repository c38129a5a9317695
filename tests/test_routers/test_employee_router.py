import unittest
from datetime import date, datetime
from types import SimpleNamespace as Obj
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from main import app
from auth.principal import Principal
from auth.services.auth_service import get_current_principal
from core.database import get_db
from core.errors import PreconditionFailedError, PreconditionRequiredError

EDITOR = Principal(user_id="u1", roles=frozenset({"HREditor"}), attributes={"CompanyCode": ["1010"]})
VIEWER = Principal(user_id="u2", roles=frozenset({"HRViewer"}), attributes={"CompanyCode": ["1010"]})
MODIFIED = datetime(2024, 1, 1, 12, 0, 0)


def employee(**overrides):
    data = dict(
        id=1, client_id=1, employee_id="1010-0001", first_name="Jane", last_name="Doe",
        email="jane@example.com", entry_date=date(2024, 1, 1), exit_date=None, status="active",
        employment_type="internal", is_manager=False, manager_id=None, cost_center_id=None,
        location_id=1, anonymized_at=None, modified_at=MODIFIED,
    )
    data.update(overrides)
    return Obj(**data)


class EmployeeRouterTests(unittest.TestCase):
    def setUp(self):
        class FakeDB:
            def rollback(self): pass
        def _fake_db():
            yield FakeDB()

        self.principal = EDITOR
        app.dependency_overrides[get_db] = _fake_db
        app.dependency_overrides[get_current_principal] = lambda: self.principal

        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.pop(get_db, None)
        app.dependency_overrides.pop(get_current_principal, None)

    # --- LIST ---

    @patch("employee.router.service.list_employees")
    def test_list_employees_passes_filters(self, mock_list):
        mock_list.return_value = [employee()]
        resp = self.client.get("/api/employees", params={"client_id": 1, "status": "active"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()[0]["employee_id"], "1010-0001")
        _, kwargs = mock_list.call_args
        self.assertEqual(kwargs, {"client_id": 1, "cost_center_id": None, "status": "active"})

    @patch("employee.router.service.list_active_employees")
    def test_active_employees_include_refs(self, mock_active):
        mock_active.return_value = [Obj(
            id=2, employee_id="1010-0002", first_name="Max", last_name="Muster", email=None,
            entry_date=date(2023, 5, 1),
            cost_center=Obj(id=3, code="CC1", name="Ops"),
            manager=Obj(id=1, employee_id="1010-0001", first_name="Jane", last_name="Doe", email=None),
        )]
        resp = self.client.get("/api/employees/active")
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()[0]
        self.assertEqual(body["cost_center"]["code"], "CC1")
        self.assertEqual(body["manager"]["employee_id"], "1010-0001")

    # --- GET /{id} ---

    @patch("employee.router.service.get_employee")
    def test_detail_sets_etag(self, mock_get):
        mock_get.return_value = employee()
        resp = self.client.get("/api/employees/1")
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.headers["ETag"], 'W/"2024-01-01T12:00:00.000000"')

    @patch("employee.router.service.get_employee")
    def test_detail_404_uses_error_envelope(self, mock_get):
        mock_get.return_value = None
        resp = self.client.get("/api/employees/99", headers={"X-Request-Id": "req-1"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": {"code": "NOT_FOUND", "message": "employee not found", "request_id": "req-1"}})
        self.assertEqual(resp.headers["X-Request-Id"], "req-1")

    # --- CREATE ---

    @patch("employee.router.service.create_employee")
    def test_create_201_with_etag(self, mock_create):
        mock_create.return_value = employee()
        resp = self.client.post("/api/employees", json={"client_id": 1, "first_name": "Jane", "location_id": 1})
        self.assertEqual(resp.status_code, 201, resp.text)
        self.assertIn("ETag", resp.headers)
        args, _ = mock_create.call_args
        # unset fields are not forwarded
        self.assertEqual(args[2], {"client_id": 1, "first_name": "Jane", "location_id": 1})

    def test_create_422_on_unknown_field(self):
        resp = self.client.post("/api/employees", json={"first_name": "Jane", "salary": 1})
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

    @patch("employee.router.service.create_employee")
    def test_create_409_on_integrity_error(self, mock_create):
        mock_create.side_effect = IntegrityError("stmt", "params", Exception("dup"))
        resp = self.client.post("/api/employees", json={"first_name": "Jane"})
        self.assertEqual(resp.status_code, 409, resp.text)
        self.assertEqual(resp.json()["error"]["code"], "CONFLICT")

    def test_viewer_cannot_create(self):
        self.principal = VIEWER
        resp = self.client.post("/api/employees", json={"first_name": "Jane"})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"]["code"], "FORBIDDEN")

    @patch("employee.router.service.list_employees")
    def test_viewer_can_read(self, mock_list):
        self.principal = VIEWER
        mock_list.return_value = []
        self.assertEqual(self.client.get("/api/employees").status_code, 200)

    def test_missing_token_is_401(self):
        app.dependency_overrides.pop(get_current_principal, None)
        resp = self.client.get("/api/employees")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["error"]["code"], "UNAUTHENTICATED")

    # --- PATCH ---

    @patch("employee.router.service.update_employee")
    def test_patch_forwards_if_match(self, mock_update):
        mock_update.return_value = employee(last_name="King")
        resp = self.client.patch(
            "/api/employees/1", json={"last_name": "King"}, headers={"If-Match": 'W/"2024-01-01T12:00:00.000000"'}
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        concurrency = mock_update.call_args[0][4]
        self.assertTrue(concurrency.has_transport_headers)
        self.assertEqual(concurrency.if_match, 'W/"2024-01-01T12:00:00.000000"')

    @patch("employee.router.service.update_employee")
    def test_patch_without_if_match_is_428(self, mock_update):
        mock_update.side_effect = PreconditionRequiredError()
        resp = self.client.patch("/api/employees/1", json={"last_name": "King"})
        self.assertEqual(resp.status_code, 428)
        self.assertEqual(resp.json()["error"]["code"], "PRECONDITION_REQUIRED")

    @patch("employee.router.service.update_employee")
    def test_patch_stale_is_412(self, mock_update):
        mock_update.side_effect = PreconditionFailedError()
        resp = self.client.patch("/api/employees/1", json={"last_name": "King"}, headers={"If-Match": '"old"'})
        self.assertEqual(resp.status_code, 412)

    # --- DELETE ---

    @patch("employee.router.service.delete_employee")
    def test_delete_204(self, mock_delete):
        resp = self.client.delete("/api/employees/1", headers={"If-Match": "*"})
        self.assertEqual(resp.status_code, 204)
        mock_delete.assert_called_once()

    # --- ANONYMIZE ---

    @patch("employee.router.retention.anonymize_former_employees")
    def test_anonymize_returns_count(self, mock_anonymize):
        mock_anonymize.return_value = 3
        resp = self.client.post("/api/employees/anonymize-former", json={"before": "2022-01-01"})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json(), {"value": 3})
        self.assertEqual(mock_anonymize.call_args[0][2], "2022-01-01")


if __name__ == "__main__":
    unittest.main()
