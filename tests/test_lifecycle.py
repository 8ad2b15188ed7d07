import unittest
from typing import Any

from loaded import UNRESOLVED, HookFailure, Loader, LoadEvent


class Service:
    def __init__(self, name: str, events: list[str], *deps: str):
        self.name = name
        self.events = events
        for dep in deps:
            setattr(self, dep, UNRESOLVED)

    def ready(self, event: LoadEvent) -> None:
        self.events.append(f"ready:{self.name}")

    def teardown(self) -> None:
        self.events.append(f"teardown:{self.name}")


class TestTeardown(unittest.TestCase):
    def test_teardown_reverses_ready_order(self) -> None:
        """Dependants are torn down before the components they use."""
        events: list[str] = []
        loader = Loader()
        loader.load(
            {
                "app": Service("app", events, "users"),
                "users": Service("users", events, "database"),
                "database": Service("database", events),
            }
        )
        ready_order = [e.split(":")[1] for e in events if e.startswith("ready:")]

        result = loader.reset()

        self.assertIsNone(result)
        teardown_order = [e.split(":")[1] for e in events if e.startswith("teardown:")]
        self.assertEqual(ready_order, ["database", "users", "app"])
        self.assertEqual(teardown_order, list(reversed(ready_order)))

    def test_reset_clears_state(self) -> None:
        events: list[str] = []
        loader = Loader()
        loader.load({"a": Service("a", events)})

        loader.reset()

        self.assertFalse(loader.is_ready("a"))
        self.assertEqual(len(loader.graph), 0)
        self.assertEqual(dict(loader.ready_components()), {})

    def test_loader_is_usable_after_reset(self) -> None:
        loader = Loader()
        first: dict[str, Any] = {"b": UNRESOLVED}
        loader.load({"a": first, "b": {}})
        loader.reset()

        second: dict[str, Any] = {"b": UNRESOLVED}
        b: dict[str, Any] = {}
        out = loader.load({"a": second, "b": b})

        assert isinstance(out, dict)
        self.assertIs(out["a"], second)
        self.assertIs(second["b"], b)

    def test_components_without_teardown_are_skipped(self) -> None:
        events: list[str] = []
        loader = Loader()
        loader.load({"plain": {"x": 1}, "svc": Service("svc", events)})

        loader.reset()

        self.assertEqual(events, ["ready:svc", "teardown:svc"])

    def test_failing_teardown_runs_the_rest(self) -> None:
        events: list[str] = []

        def broken() -> None:
            raise RuntimeError("cannot close")

        loader = Loader()
        loader.load(
            {
                "app": {"database": UNRESOLVED, "teardown": broken},
                "database": Service("database", events),
            }
        )

        with self.assertRaises(HookFailure) as ctx:
            loader.reset()

        self.assertEqual(ctx.exception.name, "app")
        self.assertEqual(ctx.exception.hook.value, "teardown")
        self.assertIn("teardown:database", events)
        self.assertFalse(loader.is_ready("database"))

    def test_cyclic_components_are_each_torn_down_once(self) -> None:
        events: list[str] = []
        loader = Loader()
        loader.load({"a": Service("a", events, "b"), "b": Service("b", events, "a")})

        loader.reset()

        teardowns = sorted(e for e in events if e.startswith("teardown:"))
        self.assertEqual(teardowns, ["teardown:a", "teardown:b"])


if __name__ == "__main__":
    unittest.main()
