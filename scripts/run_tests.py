"""Run the test suite against a throwaway app folder, installing test extras if needed."""

from __future__ import annotations

import importlib.util
import os
import subprocess
import sys
import tempfile
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
EXTRA_DEPENDENCIES = ".[test]"


def _missing_modules() -> list[str]:
    required = ("pytest", "watchdog", "loguru", "typer")
    return [name for name in required if importlib.util.find_spec(name) is None]


def _install_test_deps(missing: list[str]) -> None:
    print(f"Missing {', '.join(missing)}; installing test dependencies...", file=sys.stderr)
    subprocess.run(
        [sys.executable, "-m", "pip", "install", "-e", EXTRA_DEPENDENCIES],
        cwd=ROOT,
        check=True,
    )


def main() -> int:
    missing = _missing_modules()
    if missing:
        try:
            _install_test_deps(missing)
        except subprocess.CalledProcessError as exc:
            raise SystemExit(f"Failed to install test dependencies: {exc}") from exc

    with tempfile.TemporaryDirectory(prefix="staticwiki-home-") as home:
        # Keep the developer's real ~/.staticwiki log untouched.
        env = dict(os.environ, STATICWIKI_HOME=home)
        result = subprocess.run([sys.executable, "-m", "pytest", *sys.argv[1:]], cwd=ROOT, env=env)
    return result.returncode


if __name__ == "__main__":
    raise SystemExit(main())
