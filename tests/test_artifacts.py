import json
import os
import shutil
import sys
import tempfile
import unittest


HERE = os.path.dirname(os.path.abspath(__file__))
if HERE not in sys.path:
    sys.path.insert(0, HERE)

from fake_db import FORM_TABLE, FORM_TABLE_COLUMNS, FakeDatabase, make_host

from document_builders import build_userview_definition
from formcreator.artifacts import ApiEndpointService, CrudService, DatalistService, UserviewService
from formcreator.cache_sync import CacheCoordinator
from formcreator.definition_files import DefinitionFiles
from formcreator.host import AppHandle


APP = AppHandle("crm", "1")
FORM_JSON = json.dumps(
    {
        "className": "org.joget.apps.form.model.Form",
        "properties": {"id": "invoice"},
        "elements": [{"className": "org.joget.apps.form.lib.TextField", "properties": {"id": "amount", "label": "Amount"}}],
    }
)


class FailingDao:
    def load_by_id(self, definition_id, app):
        return None

    def list(self, app):
        return []

    def add(self, record):
        raise RuntimeError("constraint violated")

    def update(self, record):
        raise RuntimeError("constraint violated")


class TestArtifacts(unittest.TestCase):
    def setUp(self) -> None:
        self.database = FakeDatabase()
        self.database.create_table(FORM_TABLE, FORM_TABLE_COLUMNS)
        patcher = self.database.patched()
        patcher.start()
        self.addCleanup(patcher.stop)
        self.tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp, True)
        self.files = DefinitionFiles(self.tmp)
        self.host = make_host(self.database, APP)
        self.coordinator = CacheCoordinator(self.host, connect=self.database.connect)

    def _crud(self):
        return CrudService(
            DatalistService(self.host, self.coordinator, self.files),
            UserviewService(self.host, self.coordinator, self.files),
        )

    def test_api_endpoint(self) -> None:
        result = ApiEndpointService(self.host, self.coordinator, self.files).create(APP, "invoice", "Invoice")
        self.assertTrue(result["ok"])
        api_id = result["api_id"]
        self.assertTrue(api_id.startswith("API-"))
        stored = self.host.builder_dao.load_by_id(api_id, APP)
        self.assertEqual(stored["name"], "Invoice API")
        self.assertEqual(stored["type"], "api")
        self.assertEqual(json.loads(self.files.read(APP, "api", api_id))["properties"]["id"], api_id)
        self.assertEqual(self.host.builder_dao.cache_clears, 1)

    def test_unusable_file_name_is_a_filesystem_failure(self) -> None:
        service = DatalistService(self.host, self.coordinator, self.files)
        result = service.create(APP, "a/b", "AB", FORM_JSON)
        self.assertFalse(result["ok"])
        self.assertEqual(result["errors"][0]["code"], "FILESYSTEM_FAILURE")
        self.assertIsNone(result["datalist_id"])
        self.assertEqual(self.host.datalist_dao.list(APP), [])

    def test_api_ids_are_unique(self) -> None:
        service = ApiEndpointService(self.host, self.coordinator, self.files)
        first = service.create(APP, "invoice", "Invoice", "Custom")
        second = service.create(APP, "invoice", "Invoice", "Custom")
        self.assertNotEqual(first["api_id"], second["api_id"])

    def test_datalist_is_upserted(self) -> None:
        service = DatalistService(self.host, self.coordinator, self.files)
        first = service.create(APP, "invoice", "Invoice", FORM_JSON)
        second = service.create(APP, "invoice", "Invoice", FORM_JSON, "Invoices")
        self.assertEqual((first["action"], second["action"]), ("add", "update"))
        stored = self.host.datalist_dao.load_by_id("list_invoice", APP)
        self.assertEqual(stored["name"], "Invoices")
        self.assertEqual(json.loads(stored["json"])["columns"][0]["name"], "amount")

    def test_crud_creates_default_userview(self) -> None:
        result = self._crud().create(APP, "invoice", "Invoice", FORM_JSON)
        self.assertTrue(result["ok"])
        self.assertEqual((result["datalist_id"], result["userview_id"], result["mode"]), ("list_invoice", "v", "create"))
        doc = json.loads(self.host.userview_dao.load_by_id("v", APP)["json"])
        self.assertEqual(len(doc["categories"]), 2)
        self.assertEqual(doc["categories"][1]["menus"][0]["properties"]["datalistId"], "list_invoice")

    def test_crud_appends_to_first_existing_userview(self) -> None:
        existing = build_userview_definition("customer", "list_customer", "Sales", "sales")
        self.host.userview_dao.add({"id": "sales", "app_id": "crm", "app_version": "1", "name": "Sales", "json": existing})
        result = self._crud().create(APP, "invoice", "Invoice", FORM_JSON)
        self.assertEqual((result["userview_id"], result["mode"]), ("sales", "patch"))
        patched = self.host.userview_dao.load_by_id("sales", APP)["json"]
        before = json.loads(existing)["categories"]
        after = json.loads(patched)["categories"]
        self.assertEqual(after[:2], before)
        self.assertEqual(len(after), 3)
        self.assertEqual(self.files.read(APP, "userview", "sales"), patched)
        self.assertIsNone(self.host.userview_dao.load_by_id("v", APP))

    def test_malformed_userview_is_left_alone(self) -> None:
        self.host.userview_dao.add({"id": "v", "app_id": "crm", "app_version": "1", "name": "Main", "json": '{"properties": {}}'})
        result = self._crud().create(APP, "invoice", "Invoice", FORM_JSON)
        self.assertFalse(result["ok"])
        self.assertEqual(result["errors"][0]["code"], "DOCUMENT_PATCH_FAILURE")
        self.assertEqual(result["datalist_id"], "list_invoice")
        self.assertIsNone(result["userview_id"])
        self.assertEqual(self.host.userview_dao.load_by_id("v", APP)["json"], '{"properties": {}}')

    def test_dao_failure_is_an_artifact_failure(self) -> None:
        self.host.builder_dao = FailingDao()
        with self.assertLogs("formcreator.artifacts", level="ERROR"):
            result = ApiEndpointService(self.host, self.coordinator, self.files).create(APP, "invoice", "Invoice")
        self.assertFalse(result["ok"])
        self.assertIsNone(result["api_id"])
        self.assertEqual(result["errors"][0]["code"], "ARTIFACT_FAILURE")


if __name__ == "__main__":
    unittest.main()
