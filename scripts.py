#!/usr/bin/env python3
"""
Development checks for the loaded project, run through uv.

Usage: python scripts.py <test|lint|typecheck|demos|readme|check>
"""

import subprocess
import sys
from collections.abc import Callable
from pathlib import Path


def run_command(cmd: list[str], description: str) -> bool:
    """Run a command, reporting whether it succeeded."""
    print(f"\n🔄 {description}: {' '.join(cmd)}")
    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as e:
        print(f"❌ {description} failed with exit code {e.returncode}")
        return False
    except FileNotFoundError:
        print(f"❌ Command not found: {cmd[0]}")
        return False
    print(f"✅ {description} passed")
    return True


def run_all(commands: list[tuple[list[str], str]]) -> int:
    results = [run_command(cmd, description) for cmd, description in commands]
    return 0 if all(results) else 1


def run_tests() -> int:
    return run_all([(["uv", "run", "pytest", "-v"], "Tests")])


def run_lint() -> int:
    status = run_all(
        [
            (["uv", "run", "ruff", "check", "."], "Ruff linting"),
            (["uv", "run", "ruff", "format", "--check", "."], "Ruff formatting"),
        ]
    )
    if status:
        print("\n💡 Auto-fix with: uv run ruff format . && uv run ruff check --fix .")
    return status


def run_typecheck() -> int:
    return run_all(
        [
            (["uv", "run", "mypy", "src/loaded/"], "MyPy type checking"),
            (["uv", "run", "pyright", "src/loaded/"], "Pyright type checking"),
        ]
    )


def run_demos() -> int:
    """Run every demo script that is not private."""
    demos = sorted(p for p in Path("demo").glob("*.py") if not p.name.startswith("_"))
    if not demos:
        print("⚠️  No demo files found in demo directory")
        return 0
    return run_all([(["uv", "run", "python", str(demo)], f"Demo: {demo.name}") for demo in demos])


def run_readme_validation() -> int:
    """Turn the README code blocks into a test module and run it."""
    readme = Path("README.md")
    generated = Path("test_readme.py")
    if not readme.exists():
        print("❌ README.md not found")
        return 1

    generated.unlink(missing_ok=True)
    try:
        if not run_command(["uv", "run", "phmdoctest", str(readme), "--outfile", str(generated)], "README tests"):
            return 1
        return run_all([(["uv", "run", "pytest", str(generated), "-v"], "README code examples")])
    finally:
        generated.unlink(missing_ok=True)


CHECKS: dict[str, Callable[[], int]] = {
    "test": run_tests,
    "lint": run_lint,
    "typecheck": run_typecheck,
    "demos": run_demos,
    "readme": run_readme_validation,
}


def check_all() -> int:
    """Run every check and print a summary."""
    results = {}
    for name, check in CHECKS.items():
        print(f"\n{'=' * 20} {name} {'=' * 20}")
        results[name] = check() == 0

    print(f"\n{'=' * 20} SUMMARY {'=' * 20}")
    for name, passed in results.items():
        print(f"{name:<15} {'✅ PASS' if passed else '❌ FAIL'}")
    return 0 if all(results.values()) else 1


if __name__ == "__main__":
    commands = {**CHECKS, "check": check_all}
    if len(sys.argv) != 2 or sys.argv[1] not in commands:
        print(f"Usage: python scripts.py <{'|'.join(commands)}>")
        sys.exit(1)
    sys.exit(commands[sys.argv[1]]())
