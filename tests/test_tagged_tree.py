import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from formkit.tagged_tree import TaggedTreeError, TaggedTreeParser, parse_tagged_tree


FORM = """
{
  "className": "org.joget.apps.form.model.Form",
  "properties": {"id": "invoice", "name": "Invoice"},
  "elements": [
    {"className": "org.joget.apps.form.model.Section", "properties": {"id": "section1"},
     "elements": [{"className": "org.joget.apps.form.lib.TextField", "properties": {"id": "amount"}}]}
  ]
}
"""


class TestTaggedTree(unittest.TestCase):
    def test_parses_well_formed_form(self) -> None:
        root = parse_tagged_tree(FORM)
        self.assertEqual(root["properties"]["id"], "invoice")

    def test_byte_order_mark_is_tolerated(self) -> None:
        root = TaggedTreeParser().parse("\ufeff" + FORM)
        self.assertEqual(root["className"], "org.joget.apps.form.model.Form")

    def test_invalid_json(self) -> None:
        with self.assertRaises(TaggedTreeError):
            parse_tagged_tree("{not json")

    def test_root_must_have_properties(self) -> None:
        with self.assertRaises(TaggedTreeError):
            parse_tagged_tree('{"className": "Form"}')

    def test_child_without_class_name(self) -> None:
        with self.assertRaises(TaggedTreeError):
            parse_tagged_tree('{"className": "Form", "properties": {}, "elements": [{"properties": {}}]}')

    def test_elements_must_be_array(self) -> None:
        with self.assertRaises(TaggedTreeError):
            parse_tagged_tree('{"className": "Form", "properties": {}, "elements": {}}')

    def test_error_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            parse_tagged_tree("[]")


if __name__ == "__main__":
    unittest.main()
