"""Each package must import cleanly in a fresh interpreter, whatever is loaded first."""

import os
import subprocess
import sys
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1]


@pytest.mark.parametrize(
    "module",
    [
        "meetbook.domain",
        "meetbook.calendar",
        "meetbook.calendar.ics",
        "meetbook.scheduling",
        "meetbook.stores",
        "meetbook.models",
        "meetbook.api.v1.schedule",
        "meetbook.main",
    ],
)
def test_module_imports_on_its_own(module):
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(BACKEND_DIR), env.get("PYTHONPATH")]))

    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        capture_output=True,
        text=True,
        env=env,
        cwd=BACKEND_DIR,
    )

    assert result.returncode == 0, result.stderr
