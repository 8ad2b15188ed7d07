import logging

from loaded import UNRESOLVED, LoadEvent, Loader, Slot


class Database:
    def __init__(self, url: str):
        self.url = url
        self.connected = False

    def ready(self, event: LoadEvent) -> None:
        print(f"[DB] Connecting to {self.url}")
        self.connected = True

    def used_by(self, event: LoadEvent) -> None:
        print(f"[DB] Now used by {event.by_name}")

    def teardown(self) -> None:
        print(f"[DB] Disconnecting from {self.url}")
        self.connected = False


class Users:
    database = Slot[Database]()

    def __init__(self) -> None:
        self.audit = UNRESOLVED

    def ready(self, event: LoadEvent) -> None:
        assert self.database.connected, "Database must be ready first"
        print(f"[Users] Ready, ready so far: {sorted(event.loaded)}")

    def used_by(self, event: LoadEvent) -> None:
        print(f"[Users] Now used by {event.by_name}")

    def create(self, name: str) -> str:
        self.audit.record(f"created {name}")
        return f"INSERT INTO users VALUES ('{name}') on {self.database.url}"

    def teardown(self) -> None:
        print("[Users] Shutting down")


class Audit:
    """Audit and Users reference each other."""

    def __init__(self) -> None:
        self.users = UNRESOLVED
        self.entries: list[str] = []

    def record(self, entry: str) -> None:
        self.entries.append(entry)

    def ready(self, event: LoadEvent) -> None:
        print("[Audit] Ready")

    def teardown(self) -> None:
        print(f"[Audit] Flushing {len(self.entries)} entries")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    print("=== Wiring Demo ===\n")
    print("1. Loading components...")
    print("-" * 50)

    loader = Loader()
    users = Users()
    audit = Audit()
    loader.load({"users": users, "audit": audit, "database": Database("postgresql://localhost:5432/mydb")})

    print("\n2. Using wired components...")
    print("-" * 50)
    print(users.create("alice"))
    print(f"Audit entries: {audit.entries}")
    print(f"audit.users is users: {audit.users is users}")

    print("\n3. Tearing down (dependants first)...")
    print("-" * 50)
    loader.reset()

    print("\nDemo completed successfully!")
