import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models_bootstrap  # noqa: F401
from main import app
from auth.services.auth_service import create_access_token
from core.config_loader import settings
from core.dates import today
from core.database import Base, get_db


def bearer(user_id, roles, companies=None):
    attributes = {"CompanyCode": companies} if companies is not None else {}
    return {"Authorization": f"Bearer {create_access_token(user_id, roles=roles, attributes=attributes)}"}


class DirectoryFlowTests(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, future=True)

        def _get_db_override():
            db = self.SessionLocal()
            try:
                yield db
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

        app.dependency_overrides[get_db] = _get_db_override
        self.client = TestClient(app)

        self.admin = bearer("admin", ["HRAdmin"])
        self.format_patch = patch.object(settings, "CLIENT_ID_FORMAT", "relaxed")
        self.format_patch.start()

    def tearDown(self):
        self.format_patch.stop()
        app.dependency_overrides.pop(get_db, None)
        self.engine.dispose()

    def _post(self, path, body, headers=None):
        resp = self.client.post(path, json=body, headers=headers or self.admin)
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp

    def _seed_company(self):
        company = self._post("/api/clients", {"company_id": "comp-001", "name": "Comp One", "country_code": "DE"}).json()
        location = self._post("/api/locations", {
            "client_id": company["id"], "city": "Berlin", "country_code": "DE",
            "zip_code": "10115", "street": "Invalidenstr. 1", "valid_from": "2020-01-01",
        }).json()
        manager = self._post("/api/employees", {
            "client_id": company["id"], "first_name": "Grace", "last_name": "Hopper",
            "email": "Grace@Comp.example", "entry_date": "2020-01-01", "is_manager": True,
            "location_id": location["id"],
        }).json()
        cost_center = self._post("/api/costcenters", {
            "client_id": company["id"], "code": "ops", "name": "Operations",
            "responsible_id": manager["id"], "valid_from": "2020-01-01",
        }).json()
        return company, location, manager, cost_center

    def test_end_to_end_directory(self):
        company, location, manager, cost_center = self._seed_company()
        self.assertEqual(company["company_id"], "COMP-001")
        self.assertEqual(manager["employee_id"], "COMP-001-0001")
        self.assertEqual(manager["email"], "grace@comp.example")
        self.assertEqual(cost_center["code"], "OPS")

        worker = self._post("/api/employees", {
            "cost_center_id": cost_center["id"], "first_name": "Alan", "last_name": "Turing",
            "entry_date": "2021-03-01", "location_id": location["id"],
        }).json()
        self.assertEqual(worker["employee_id"], "COMP-001-0002")
        self.assertEqual(worker["client_id"], company["id"])
        self.assertEqual(worker["manager_id"], manager["id"])

        active = self.client.get("/api/employees/active", headers=self.admin).json()
        by_id = {row["employee_id"]: row for row in active}
        self.assertEqual(by_id["COMP-001-0002"]["manager"]["last_name"], "Hopper")
        self.assertEqual(by_id["COMP-001-0002"]["cost_center"]["code"], "OPS")

        handover = self._post("/api/assignments", {
            "client_id": company["id"], "employee_id": manager["id"], "cost_center_id": cost_center["id"],
            "valid_from": today().isoformat(), "is_responsible": True,
        }).json()
        self.assertTrue(handover["is_responsible"])
        cc_now = self.client.get(f"/api/costcenters/{cost_center['id']}", headers=self.admin).json()
        self.assertEqual(cc_now["responsible_id"], manager["id"])
        worker_now = self.client.get(f"/api/employees/{worker['id']}", headers=self.admin).json()
        self.assertEqual(worker_now["manager_id"], manager["id"])

        preview = self.client.get(f"/api/clients/{company['id']}/delete-preview", headers=self.admin).json()
        self.assertEqual(preview["employee_count"], 2)

    def test_if_match_flow(self):
        _, _, manager, _ = self._seed_company()
        url = f"/api/employees/{manager['id']}"

        detail = self.client.get(url, headers=self.admin)
        etag = detail.headers["ETag"]

        missing = self.client.patch(url, json={"last_name": "Murray"}, headers=self.admin)
        self.assertEqual(missing.status_code, 428, missing.text)

        ok = self.client.patch(url, json={"last_name": "Murray"}, headers={**self.admin, "If-Match": etag})
        self.assertEqual(ok.status_code, 200, ok.text)
        self.assertNotEqual(ok.headers["ETag"], etag)

        stale = self.client.patch(url, json={"first_name": "G."}, headers={**self.admin, "If-Match": etag})
        self.assertEqual(stale.status_code, 412, stale.text)
        self.assertEqual(stale.json()["error"]["code"], "PRECONDITION_FAILED")

        immutable = self.client.patch(
            url, json={"employee_id": "COMP-001-0009"}, headers={**self.admin, "If-Match": ok.headers["ETag"]}
        )
        self.assertEqual(immutable.status_code, 400)
        self.assertEqual(immutable.json()["error"]["message"], "Employee ID cannot be modified.")

    def test_company_scoping(self):
        company, location, _, _ = self._seed_company()
        outsider = bearer("hr-2", ["HREditor"], ["2020"])
        insider = bearer("hr-1", ["HREditor"], ["comp-001"])

        self.assertEqual(self.client.get("/api/employees", headers=outsider).json(), [])
        self.assertEqual(len(self.client.get("/api/employees", headers=insider).json()), 1)

        denied = self.client.post("/api/employees", json={
            "client_id": company["id"], "first_name": "Eve", "last_name": "X",
            "entry_date": "2022-01-01", "location_id": location["id"],
        }, headers=outsider)
        self.assertEqual(denied.status_code, 403, denied.text)
        self.assertEqual(denied.json()["error"]["code"], "UNAUTHORIZED_COMPANY")

        no_role = bearer("nobody", [], ["comp-001"])
        self.assertEqual(self.client.get("/api/employees", headers=no_role).status_code, 403)
        self.assertEqual(self.client.get("/api/employees").status_code, 401)

    def test_anonymize_former(self):
        company, location, _, _ = self._seed_company()
        self._post("/api/employees", {
            "client_id": company["id"], "first_name": "Old", "last_name": "Timer",
            "entry_date": "2015-01-01", "exit_date": "2019-12-31", "status": "inactive",
            "location_id": location["id"],
        })
        resp = self.client.post("/api/employees/anonymize-former", json={"before": "2020-01-01"}, headers=self.admin)
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json(), {"value": 1})

        bad = self.client.post("/api/employees/anonymize-former", json={"before": "soon"}, headers=self.admin)
        self.assertEqual(bad.status_code, 400)


if __name__ == "__main__":
    unittest.main()
