import asyncio
import logging
from typing import Any

from loaded import UNRESOLVED, LoadEvent, Loader


async def fetch(name: str, value: Any, delay: float) -> Any:
    """Simulate a component that takes a while to arrive."""
    print(f"[fetch] {name} requested")
    await asyncio.sleep(delay)
    print(f"[fetch] {name} arrived")
    return value


class Config:
    def __init__(self) -> None:
        self.values = {"greeting": "hello"}

    async def ready(self, event: LoadEvent) -> None:
        await asyncio.sleep(0.05)
        print("[Config] Loaded values")


class Greeter:
    def __init__(self) -> None:
        self.config = UNRESOLVED

    def ready(self, event: LoadEvent) -> None:
        print(f"[Greeter] Ready with greeting '{self.config.values['greeting']}'")

    def greet(self, name: str) -> str:
        return f"{self.config.values['greeting']}, {name}"


class Server:
    def __init__(self) -> None:
        self.greeter = UNRESOLVED

    def ready(self, event: LoadEvent) -> None:
        print("[Server] Ready")

    async def teardown(self) -> None:
        await asyncio.sleep(0.01)
        print("[Server] Stopped")


async def main() -> None:
    loader = Loader()

    print("1. Waiting for the server before anything is loaded...")
    print("-" * 50)
    waiting = asyncio.ensure_future(loader.wait(["server"]))

    print("\n2. Loading components, some of which are still being fetched...")
    print("-" * 50)
    await loader.load_async(
        {
            "server": fetch("server", Server(), 0.02),
            "greeter": Greeter(),
            "config": fetch("config", Config(), 0.05),
        }
    )
    ready = await waiting
    print(f"\nReady components: {sorted(ready)}")
    print(ready["greeter"].greet("world"))

    print("\n3. Tearing down...")
    print("-" * 50)
    await loader.reset_async()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    print("=== Async Loading Demo ===\n")
    asyncio.run(main())
    print("\nDemo completed successfully!")
