import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from formkit.json_tree import (
    JsonSpliceError,
    extract,
    find_array_span,
    find_key,
    find_matching_bracket,
    splice_into_array,
    walk,
)


class TestWalkExtract(unittest.TestCase):
    def test_walk_is_depth_first_in_document_order(self) -> None:
        tree = {"id": "root", "elements": [{"id": "a", "elements": [{"id": "a1"}]}, {"id": "b"}]}
        self.assertEqual([n["id"] for n in walk(tree)], ["root", "a", "a1", "b"])

    def test_extract_respects_limit(self) -> None:
        tree = {"elements": [{"k": 1}, {"k": 2}, {"k": 3}]}
        found = extract(tree, lambda n: "k" in n, limit=2)
        self.assertEqual([n["k"] for n in found], [1, 2])

    def test_extract_zero_limit(self) -> None:
        self.assertEqual(extract({"k": 1}, lambda n: True, limit=0), [])


class TestBracketMatching(unittest.TestCase):
    def test_nested_arrays(self) -> None:
        text = '[1, [2, 3], [[4]]]'
        self.assertEqual(find_matching_bracket(text, 0), len(text) - 1)
        self.assertEqual(find_matching_bracket(text, 4), 9)

    def test_brackets_inside_strings_are_ignored(self) -> None:
        text = '["[test]", "a]b", "x\\"]"]'
        self.assertEqual(find_matching_bracket(text, 0), len(text) - 1)

    def test_unbalanced_returns_minus_one(self) -> None:
        self.assertEqual(find_matching_bracket('[1, 2', 0), -1)
        self.assertEqual(find_matching_bracket('{}', 0), -1)

    def test_find_key_only_matches_root_level(self) -> None:
        text = '{"nested": {"categories": 1}, "label": "categories", "categories": []}'
        pos = find_key(text, "categories")
        self.assertEqual(text[pos:].strip(), "[]}")

    def test_find_key_missing(self) -> None:
        self.assertEqual(find_key('{"a": 1}', "categories"), -1)

    def test_array_span_requires_array(self) -> None:
        with self.assertRaises(JsonSpliceError):
            find_array_span('{"categories": {}}', "categories")


class TestSplice(unittest.TestCase):
    def test_empty_array(self) -> None:
        text = '{"categories": [], "id": "v"}'
        out = splice_into_array(text, "categories", '{"n": 1}')
        self.assertEqual(out, '{"categories": [{"n": 1}], "id": "v"}')

    def test_whitespace_only_array_is_empty(self) -> None:
        text = '{"categories": [\n  ]}'
        out = splice_into_array(text, "categories", "X")
        self.assertEqual(out, '{"categories": [\n  X]}')

    def test_non_empty_array_gets_separator(self) -> None:
        text = '{"categories": [{"n": 0}\n], "tail": "[keep]"}'
        out = splice_into_array(text, "categories", '{"n": 1}')
        self.assertEqual(out, '{"categories": [{"n": 0},{"n": 1}\n], "tail": "[keep]"}')

    def test_bytes_outside_array_unchanged(self) -> None:
        head = '{\n  "properties": {"label": "a [test] ]"},\n  "categories": '
        body = '[ {"label": "x]"} ]'
        tail = ',\n  "setting": {"x": [1, 2]}\n}'
        out = splice_into_array(head + body + tail, "categories", '{"new": true}')
        self.assertTrue(out.startswith(head))
        self.assertTrue(out.endswith(tail))
        self.assertEqual(out[len(head) : len(out) - len(tail)], '[ {"label": "x]"},{"new": true} ]')

    def test_missing_key_raises(self) -> None:
        with self.assertRaises(JsonSpliceError):
            splice_into_array('{"menus": []}', "categories", "{}")

    def test_unclosed_array_raises(self) -> None:
        with self.assertRaises(JsonSpliceError):
            splice_into_array('{"categories": [{"a": 1}', "categories", "{}")


if __name__ == "__main__":
    unittest.main()
