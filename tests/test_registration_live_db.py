import os
import shutil
import sys
import tempfile
import unittest
import uuid

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

USE_DB = os.getenv("USE_DB", "0") == "1"
DB_URL = os.getenv("FORMCREATOR_DB_URL") or os.getenv("DATABASE_URL")

if USE_DB and DB_URL:
    from formcreator.db import execute, get_conn, quote_ident
    from formcreator.definition_files import DefinitionFiles
    from formcreator.host import AppHandle, HostContext
    from formcreator.identity import ContextIdentity
    from formcreator.registration import FormRegistrationService
    from formcreator.stores import FormDefinitionTableDao, MemoryAppRegistry, MemoryDefinitionDao, MemoryFormDataDao


class TestRegistrationLiveDb(unittest.TestCase):
    @unittest.skipUnless(USE_DB and DB_URL, "live DB test requires USE_DB=1 and FORMCREATOR_DB_URL/DATABASE_URL")
    def test_register_twice_against_postgres(self):
        suffix = uuid.uuid4().hex[:8]
        form_table = f"app_form_def_{suffix}"
        data_table = f"fc_{suffix}"
        tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmp, True)

        with get_conn() as conn:
            execute(
                conn,
                f"""
                create table {quote_ident(form_table)} (
                    "appId" varchar(255) not null,
                    "appVersion" varchar(255) not null,
                    "formId" varchar(255) not null,
                    "name" varchar(255),
                    "tableName" varchar(255),
                    "json" text,
                    "dateCreated" timestamptz,
                    "dateModified" timestamptz,
                    primary key ("appId", "appVersion", "formId")
                )
                """,
            )
            conn.commit()

        def cleanup():
            with get_conn() as conn:
                execute(conn, f"drop table if exists {quote_ident(form_table)}")
                execute(conn, f"drop table if exists {quote_ident('app_fd_' + data_table)}")
                conn.commit()

        self.addCleanup(cleanup)

        def create_data_table(form_id, table_name, key):
            with get_conn() as conn:
                execute(conn, f"create table if not exists {quote_ident('app_fd_' + table_name)} (id varchar(255) primary key)")
                conn.commit()

        app = AppHandle("live", "1")
        host = HostContext(
            app_registry=MemoryAppRegistry([app], current=app),
            form_dao=FormDefinitionTableDao(form_table=form_table),
            datalist_dao=MemoryDefinitionDao("datalist"),
            userview_dao=MemoryDefinitionDao("userview"),
            builder_dao=MemoryDefinitionDao("builder"),
            form_data_dao=MemoryFormDataDao(create_data_table),
            identity=ContextIdentity(),
        )
        service = FormRegistrationService(host, files=DefinitionFiles(tmp), form_table=form_table)

        first = service.register(app, "invoice", "Invoice", data_table, '{"v": 1}')
        second = service.register(app, "invoice", "Invoice", data_table, '{"v": 2}')
        self.assertTrue(first["ok"], first)
        self.assertEqual((first["action"], second["action"]), ("insert", "update"))
        rows = host.form_dao.list(app)
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["json"], '{"v": 2}')


if __name__ == "__main__":
    unittest.main()
