"""CSV import/export of an app's string table."""

import csv
import io

import pytest

from string_manager.core.exceptions import InvalidInputError
from string_manager.domains.apps.entities import App
from string_manager.domains.strings.csv_io import detect_column, export_csv, import_csv, KEY_COLUMN_NAMES, VALUE_COLUMN_NAMES
from string_manager.domains.strings.entities import StringItem, StringStatus


class TestDetectColumn:
    def test_key_column_by_substring(self):
        columns = ["Status", "String ID (Key)", "Default Value (English)"]
        assert detect_column(columns, KEY_COLUMN_NAMES) == "String ID (Key)"

    def test_value_column_is_case_insensitive(self):
        columns = ["No", "KOREAN", "Japanese"]
        assert detect_column(columns, VALUE_COLUMN_NAMES) == "KOREAN"

    def test_no_match(self):
        assert detect_column(["Foo", "Bar"], KEY_COLUMN_NAMES) is None


class TestExportCsv:
    def test_default_header_without_columns(self):
        app = App(id=1, project_id=1, name="iOS")
        strings = [
            StringItem(id=1, app_id=1, key="1", value="Hello", status=StringStatus.NEW),
            StringItem(id=2, app_id=1, key="2", value='Say "hi"'),
        ]

        content = export_csv(app, strings)

        lines = content.splitlines()
        assert lines[0] == '"#","String Key","String Value","Status"'
        assert lines[1] == '"1","1","Hello","new"'
        assert lines[2] == '"2","2","Say ""hi""",""'

    def test_app_columns_drive_layout(self):
        app = App(id=1, project_id=1, name="iOS", columns=["No", "English", "Korean"], key_column="No", value_column="English")
        strings = [StringItem(id=1, app_id=1, key="7", value="Hello", additional_columns={"Korean": "안녕"})]

        rows = list(csv.reader(io.StringIO(export_csv(app, strings))))

        assert rows[0] == ["#", "No", "English", "Korean", "Status"]
        assert rows[1] == ["1", "7", "Hello", "안녕", ""]


class TestImportCsv:
    @pytest.mark.asyncio
    async def test_import_creates_new_strings(self, memory_store):
        user = await memory_store.create_user("dev@strings.io", "Dev")
        project = await memory_store.create_project("P", user.id)
        app = await memory_store.create_app(project.id, "A")
        text = (
            "No,Default Value (English),Korean,Resource Folder\n"
            "1,Hello,안녕,common\n"
            "2,  ,빈,common\n"
            "3,Bye,잘가,common\n"
        )

        created = await import_csv(memory_store, app.id, text, user_id=user.id)

        assert [item.key for item in created] == ["1", "3"]
        assert all(item.status == StringStatus.NEW for item in created)
        assert created[0].additional_columns == {"Korean": "안녕", "Resource Folder": "common"}
        assert created[0].modified_by == user.id

        updated = await memory_store.get_app(app.id)
        assert updated.columns == ["No", "Default Value (English)", "Korean", "Resource Folder"]
        assert updated.key_column == "No"
        assert updated.value_column == "Default Value (English)"

    @pytest.mark.asyncio
    async def test_explicit_columns_override_detection(self, memory_store):
        user = await memory_store.create_user("dev@strings.io", "Dev")
        project = await memory_store.create_project("P", user.id)
        app = await memory_store.create_app(project.id, "A")

        created = await import_csv(memory_store, app.id, "Key,English,Korean\nk1,Hi,안녕\n", value_column="Korean")

        assert created[0].value == "안녕"
        assert created[0].additional_columns == {"English": "Hi"}

    @pytest.mark.asyncio
    async def test_missing_key_column_is_rejected(self, memory_store):
        with pytest.raises(InvalidInputError):
            await import_csv(memory_store, 1, "Foo,English\nx,Hello\n")

    @pytest.mark.asyncio
    async def test_missing_value_column_is_rejected(self, memory_store):
        with pytest.raises(InvalidInputError):
            await import_csv(memory_store, 1, "Key,Foo\nx,Hello\n")
