"""Tests for root, nested and repeater-row data contexts."""

from formgrid.services.data_context import RootContext


class TestRootContext:
    def test_get_set(self):
        answers = {}
        context = RootContext(answers)

        context.set("name", "Ada")

        assert answers == {"name": "Ada"}
        assert context.get("name") == "Ada"
        assert context.get("missing", "x") == "x"

    def test_errors_shared_with_owner(self):
        errors = {}
        context = RootContext({}, errors)

        context.set_error("name", "Name is required")
        assert errors == {"name": "Name is required"}
        assert context.error("name") == "Name is required"

        context.clear_error("name")
        assert errors == {}


class TestNestedContext:
    def test_writes_sub_dict_without_touching_the_old_one(self):
        address = {"city": "Lyon"}
        answers = {"address": address}
        nested = RootContext(answers).nested("address")

        nested.set("street", "Rue A")

        assert answers["address"] == {"city": "Lyon", "street": "Rue A"}
        assert address == {"city": "Lyon"}

    def test_missing_scope_created_on_write(self):
        answers = {}
        RootContext(answers).nested("address").set("city", "Oslo")
        assert answers == {"address": {"city": "Oslo"}}

    def test_qualified_keys(self):
        nested = RootContext({}).nested("address")
        assert nested.key("city") == "address.city"
        assert nested.nested("geo").key("lat") == "address.geo.lat"


class TestRepeaterRowContext:
    def test_row_write_is_copy_on_write(self):
        rows = [{"phone": "1"}, {}]
        answers = {"contacts": rows}
        row = RootContext(answers).row("contacts", 1)

        row.set("phone", "2")

        assert answers["contacts"] == [{"phone": "1"}, {"phone": "2"}]
        assert rows == [{"phone": "1"}, {}]

    def test_write_to_missing_row_is_dropped(self):
        answers = {"contacts": [{}]}
        RootContext(answers).row("contacts", 3).set("phone", "9")
        assert answers == {"contacts": [{}]}

    def test_row_key_and_errors(self):
        errors = {}
        root = RootContext({"contacts": [{}, {}]}, errors)
        row = root.row("contacts", 1)

        assert row.key("phone") == "contacts.1.phone"
        row.set_error("phone", "Phone is required")
        assert errors == {"contacts.1.phone": "Phone is required"}
        assert root.row("contacts", 0).error("phone") is None

    def test_nested_container_inside_row(self):
        answers = {"people": [{"address": {"city": "Rome"}}]}
        root = RootContext(answers)
        address = root.row("people", 0).nested("address")

        address.set("zip", "00100")

        assert answers["people"][0]["address"] == {"city": "Rome", "zip": "00100"}
        assert address.key("zip") == "people.0.address.zip"
