"""
Unit tests for deep_key_search: pre-order traversal, depth bound, path access.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deep_key_search import find_first, find_value, get_path, has_key_path


def _nest(depth, leaf):
    """Alternate dict/list wrappers around `leaf`, `depth` levels deep."""
    node = leaf
    for level in range(depth):
        node = {"level": level, "child": node} if level % 2 else [0, node]
    return node


class TestDeepKeySearch(unittest.TestCase):

    def test_finds_key_nested_ten_levels_in_mixed_containers(self):
        tree = _nest(10, {"getTranscriptEndpoint": {"params": "TOKEN"}})
        self.assertEqual(find_value(tree, "getTranscriptEndpoint.params"), "TOKEN")

    def test_returns_first_match_in_pre_order(self):
        tree = {
            "a": [{"x": 1}, {"target": "first"}],
            "b": {"target": "second"},
            "target": "shallow-but-later",
        }
        self.assertEqual(find_value(tree, "target"), "first")

    def test_parent_checked_before_children(self):
        tree = {"target": "parent", "child": {"target": "child"}}
        self.assertEqual(find_value(tree, "target"), "parent")

    def test_absent_key_returns_none(self):
        self.assertIsNone(find_value({"a": [1, 2, {"b": None}]}, "missing"))
        self.assertIsNone(find_value(None, "missing"))
        self.assertIsNone(find_value("scalar", "missing"))

    def test_depth_bound_means_not_found(self):
        tree = _nest(20, {"deep": 1})
        self.assertIsNone(find_value(tree, "deep", max_depth=5))
        self.assertEqual(find_value(tree, "deep", max_depth=25), 1)

    def test_very_deep_tree_does_not_hit_recursion_limit(self):
        node = {"needle": "found"}
        for _ in range(5000):
            node = {"next": node}
        self.assertEqual(find_value(node, "needle", max_depth=6000), "found")
        self.assertIsNone(find_value(node, "needle", max_depth=1000))

    def test_predicate_sees_scalars(self):
        tree = {"a": [1, 2, "hit", 3]}
        self.assertEqual(find_first(tree, lambda n: n == "hit"), "hit")

    def test_get_path_indexes_lists(self):
        data = {"a": {"b": [{"c": "one"}, {"c": "two"}]}}
        self.assertEqual(get_path(data, "a.b.1.c"), "two")
        self.assertEqual(get_path(data, ["a", "b", 0, "c"]), "one")
        self.assertIsNone(get_path(data, "a.b.5.c"))
        self.assertEqual(get_path(data, "a.x", default="dflt"), "dflt")

    def test_has_key_path_accepts_falsy_values(self):
        predicate = has_key_path("a.b")
        self.assertTrue(predicate({"a": {"b": None}}))
        self.assertFalse(predicate({"a": {}}))
        self.assertFalse(predicate(["a"]))


if __name__ == "__main__":
    unittest.main()
