#!/usr/bin/env python3
"""Run the apiprobe test suites: run_tests.py [all|unit|integration]"""

import subprocess
import sys

SUITES = {
    "unit": "tests/unit/",
    "integration": "tests/integration/",
}


def main() -> int:
    selected = sys.argv[1] if len(sys.argv) > 1 else "all"
    if selected != "all" and selected not in SUITES:
        print(f"Unknown suite '{selected}', expected one of: all, {', '.join(SUITES)}")
        return 2

    failed = []
    for name, path in SUITES.items():
        if selected not in ("all", name):
            continue
        print(f"\n== {name} tests ==")
        result = subprocess.run([sys.executable, "-m", "pytest", path, "-v", "--tb=short"], check=False)
        if result.returncode != 0:
            failed.append(name)

    if failed:
        print(f"\n❌ Failed suites: {', '.join(failed)}")
        return 1
    print("\n🎉 All tests passed!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
