import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path


HERE = os.path.dirname(os.path.abspath(__file__))
if HERE not in sys.path:
    sys.path.insert(0, HERE)

from fake_db import FORM_TABLE, FORM_TABLE_COLUMNS, FakeDatabase, make_host

from formcreator.bootstrap import FORM_CREATOR_ID, load_form_creator_json
from formcreator.definition_files import DefinitionFiles
from formcreator.form_creation import FormCreationService
from formcreator.host import AppHandle
from formkit.tagged_tree import parse_tagged_tree


APP = AppHandle("crm", "1")


class TestBootstrap(unittest.TestCase):
    def setUp(self) -> None:
        self.database = FakeDatabase()
        self.database.create_table(FORM_TABLE, FORM_TABLE_COLUMNS)
        patcher = self.database.patched()
        patcher.start()
        self.addCleanup(patcher.stop)
        self.tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp, True)
        self.host = make_host(self.database, APP)
        self.service = FormCreationService(self.host, connect=self.database.connect, files=DefinitionFiles(self.tmp))

    def test_resource_is_a_valid_form(self) -> None:
        root = parse_tagged_tree(load_form_creator_json())
        self.assertEqual(root["properties"]["id"], FORM_CREATOR_ID)
        self.assertEqual(root["properties"]["tableName"], "form_creator")

    def test_first_use_registers_form_and_crud(self) -> None:
        result = self.service.bootstrap.ensure(APP)
        self.assertTrue(result["ok"])
        self.assertTrue(result["created"])
        self.assertEqual([r["formId"] for r in self.database.rows(FORM_TABLE)], [FORM_CREATOR_ID])
        self.assertIn("app_fd_form_creator", self.database.tables)
        self.assertIsNotNone(self.host.datalist_dao.load_by_id("list_formCreator", APP))
        userview = json.loads(self.host.userview_dao.load_by_id("v", APP)["json"])
        self.assertEqual(userview["properties"]["name"], "Form Creator")

    def test_second_call_is_a_noop(self) -> None:
        self.service.bootstrap.ensure(APP)
        inserts = self.database.queries.count("form_definition.insert")
        result = self.service.bootstrap.ensure(APP)
        self.assertFalse(result["created"])
        self.assertEqual(self.database.queries.count("form_definition.insert"), inserts)
        self.assertEqual(len(self.database.rows(FORM_TABLE)), 1)

    def test_registration_failure_is_fatal(self) -> None:
        self.database.fail_on("form_definition.insert")
        result = self.service.bootstrap.ensure(APP)
        self.assertFalse(result["ok"])
        self.assertEqual(result["errors"][0]["code"], "BOOTSTRAP_FAILURE")
        self.assertEqual(result["errors"][0]["detail"]["cause"]["code"], "WRITE_FAILURE")

    def test_crud_failure_is_only_a_warning(self) -> None:
        self.host.userview_dao.add({"id": "v", "app_id": "crm", "app_version": "1", "name": "Main", "json": "{}"})
        result = self.service.bootstrap.ensure(APP)
        self.assertTrue(result["ok"])
        self.assertIn("DOCUMENT_PATCH_FAILURE", [w["code"] for w in result["warnings"]])

    def test_missing_resource(self) -> None:
        self.service.bootstrap._resource_path = Path(self.tmp) / "missing.json"
        result = self.service.bootstrap.ensure(APP)
        self.assertEqual(result["errors"][0]["code"], "BOOTSTRAP_FAILURE")
        self.assertEqual(self.database.rows(FORM_TABLE), [])


if __name__ == "__main__":
    unittest.main()
