#!/usr/bin/env python3
"""
Unit tests for the dependency graph.
"""

import unittest

from loaded.graph import CircularDependencyError, DependencyGraph, NodeNotFoundError


def chain() -> DependencyGraph:
    graph = DependencyGraph()
    for name in ("a", "b", "c"):
        graph.add_node(name)
    graph.add_dependency("a", "b")
    graph.add_dependency("b", "c")
    return graph


class TestNodes(unittest.TestCase):
    """Test node management."""

    def test_add_node_defaults_payload_to_name(self):
        graph = DependencyGraph()
        graph.add_node("a")

        self.assertTrue(graph.has_node("a"))
        self.assertEqual(graph.get_node_data("a"), "a")
        self.assertEqual(graph.size(), 1)

    def test_add_node_keeps_explicit_none(self):
        graph = DependencyGraph()
        graph.add_node("a", None)

        self.assertIsNone(graph.get_node_data("a"))

    def test_adding_twice_keeps_payload_and_edges(self):
        """Registering the same name again never overwrites anything."""
        graph = DependencyGraph()
        first = object()
        graph.add_node("a", first)
        graph.add_node("b")
        graph.add_dependency("a", "b")

        graph.add_node("a", object())

        self.assertIs(graph.get_node_data("a"), first)
        self.assertEqual(graph.dependencies_of("a"), ["b"])
        self.assertEqual(graph.dependants_of("b"), ["a"])

    def test_set_node_data(self):
        graph = DependencyGraph()
        graph.add_node("a")
        graph.set_node_data("a", 42)

        self.assertEqual(graph.get_node_data("a"), 42)

    def test_missing_node_data(self):
        graph = DependencyGraph()

        with self.assertRaises(NodeNotFoundError) as ctx:
            graph.get_node_data("nope")
        self.assertEqual(ctx.exception.name, "nope")

        with self.assertRaises(NodeNotFoundError):
            graph.set_node_data("nope", 1)

    def test_remove_node_prunes_edges(self):
        graph = chain()
        graph.remove_node("b")

        self.assertFalse(graph.has_node("b"))
        self.assertEqual(graph.dependencies_of("a"), [])
        self.assertEqual(graph.dependants_of("c"), [])

    def test_remove_absent_node_is_noop(self):
        graph = chain()
        graph.remove_node("zzz")

        self.assertEqual(len(graph), 3)


class TestEdges(unittest.TestCase):
    """Test dependency edges."""

    def test_add_dependency_is_symmetric(self):
        graph = DependencyGraph()
        graph.add_node("from")
        graph.add_node("to")
        graph.add_dependency("from", "to")

        self.assertIn("to", graph.dependencies_of("from"))
        self.assertIn("from", graph.dependants_of("to"))
        self.assertEqual(graph.direct_dependencies_of("from"), ["to"])
        self.assertEqual(graph.direct_dependants_of("to"), ["from"])

    def test_add_dependency_requires_both_nodes(self):
        graph = DependencyGraph()
        graph.add_node("a")

        with self.assertRaises(NodeNotFoundError) as ctx:
            graph.add_dependency("a", "missing")
        self.assertEqual(ctx.exception.name, "missing")

        with self.assertRaises(NodeNotFoundError):
            graph.add_dependency("missing", "a")

    def test_node_not_found_is_a_key_error(self):
        graph = DependencyGraph()

        with self.assertRaises(KeyError):
            graph.dependencies_of("missing")

    def test_duplicate_dependency_is_idempotent(self):
        graph = chain()
        graph.add_dependency("a", "b")

        self.assertEqual(graph.direct_dependencies_of("a"), ["b"])
        self.assertEqual(graph.direct_dependants_of("b"), ["a"])

    def test_remove_dependency(self):
        graph = chain()
        graph.remove_dependency("a", "b")

        self.assertFalse(graph.has_dependency("a", "b"))
        self.assertEqual(graph.dependants_of("b"), [])
        # absent edges and nodes are ignored
        graph.remove_dependency("a", "b")
        graph.remove_dependency("x", "y")


class TestTraversal(unittest.TestCase):
    """Test closures and ordering."""

    def test_overall_order_of_chain(self):
        self.assertEqual(chain().overall_order(), ["c", "b", "a"])

    def test_dependencies_of_excludes_self(self):
        graph = chain()

        self.assertEqual(set(graph.dependencies_of("a")), {"b", "c"})
        self.assertEqual(set(graph.dependants_of("c")), {"a", "b"})

    def test_leaves_only(self):
        graph = DependencyGraph()
        for name in ("a", "b", "c", "d"):
            graph.add_node(name)
        graph.add_dependency("a", "b")
        graph.add_dependency("a", "c")
        graph.add_dependency("c", "d")

        self.assertEqual(set(graph.dependencies_of("a", leaves_only=True)), {"b", "d"})
        self.assertEqual(graph.dependants_of("d", leaves_only=True), ["a"])
        self.assertEqual(set(graph.overall_order(leaves_only=True)), {"b", "d"})

    def test_overall_order_covers_disconnected_subgraphs(self):
        graph = chain()
        graph.add_node("x")
        graph.add_node("y")
        graph.add_dependency("x", "y")

        order = graph.overall_order()

        self.assertEqual(sorted(order), ["a", "b", "c", "x", "y"])
        self.assertLess(order.index("y"), order.index("x"))
        self.assertLess(order.index("c"), order.index("a"))

    def test_empty_graph(self):
        self.assertEqual(DependencyGraph().overall_order(), [])

    def test_cycle_detected(self):
        graph = chain()
        graph.add_dependency("c", "a")

        with self.assertRaises(CircularDependencyError) as ctx:
            graph.overall_order()

        cycle = ctx.exception.cycle
        self.assertEqual(cycle[0], cycle[-1])
        self.assertEqual(set(cycle), {"a", "b", "c"})
        self.assertIn("Circular dependency detected", str(ctx.exception))

    def test_cycle_detected_in_closure(self):
        graph = chain()
        graph.add_dependency("c", "b")

        with self.assertRaises(CircularDependencyError) as ctx:
            graph.dependencies_of("a")
        self.assertEqual(ctx.exception.cycle, ["b", "c", "b"])

    def test_circular_mode_tolerates_cycles(self):
        graph = chain()
        graph.circular = True
        graph.add_dependency("c", "a")

        order = graph.overall_order()

        self.assertEqual(sorted(order), ["a", "b", "c"])
        self.assertEqual(len(order), 3)
        self.assertEqual(set(graph.dependencies_of("a")), {"b", "c"})

    def test_circular_mode_keeps_acyclic_order(self):
        graph = DependencyGraph(circular=True)
        for name in ("a", "b", "c", "d"):
            graph.add_node(name)
        graph.add_dependency("a", "b")
        graph.add_dependency("b", "a")
        graph.add_dependency("a", "c")
        graph.add_dependency("c", "d")

        order = graph.overall_order()

        self.assertEqual(sorted(order), ["a", "b", "c", "d"])
        self.assertLess(order.index("d"), order.index("c"))
        self.assertLess(order.index("c"), order.index("a"))


class TestClone(unittest.TestCase):
    """Test graph cloning."""

    def test_clone_is_independent(self):
        payload = object()
        graph = chain()
        graph.set_node_data("a", payload)

        copy = graph.clone()
        copy.add_node("d")
        copy.add_dependency("c", "d")
        copy.remove_dependency("a", "b")

        self.assertIs(copy.get_node_data("a"), payload)
        self.assertFalse(graph.has_node("d"))
        self.assertTrue(graph.has_dependency("a", "b"))
        self.assertEqual(graph.overall_order(), ["c", "b", "a"])

    def test_clone_keeps_circular_flag(self):
        graph = DependencyGraph(circular=True)

        self.assertTrue(graph.clone().circular)


if __name__ == "__main__":
    unittest.main()
