"""Tests for the request body base model and the error mapping helpers."""

import os
import subprocess
import sys
from pathlib import Path
from typing import Optional

import pytest
from fastapi import HTTPException
from pydantic import Field

from meetbook.api.deps import BaseBody, raise_http
from meetbook.core.errors import NotFound, PersistenceFailure, SlotUnavailable

BACKEND_DIR = Path(__file__).resolve().parents[1]


class _Body(BaseBody):
    start_time: str = Field(alias="startTime")
    note: Optional[str] = None


def test_body_accepts_alias_and_field_name():
    assert _Body(startTime="09:00").start_time == "09:00"
    assert _Body(start_time="09:00").start_time == "09:00"


def test_body_ignores_unknown_fields():
    body = _Body(startTime="09:00", legacyFlag=True)

    assert not hasattr(body, "legacyFlag")
    assert body.model_dump() == {"start_time": "09:00", "note": None}


def test_body_config_raises_no_deprecation_warning():
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(BACKEND_DIR), env.get("PYTHONPATH")]))

    result = subprocess.run(
        [
            sys.executable,
            "-W",
            "error::pydantic.warnings.PydanticDeprecatedSince20",
            "-c",
            "import meetbook.api.deps",
        ],
        capture_output=True,
        text=True,
        env=env,
        cwd=BACKEND_DIR,
    )

    assert result.returncode == 0, result.stderr


@pytest.mark.parametrize(
    "error, status_code",
    [
        (NotFound("Meeting m1 not found"), 404),
        (SlotUnavailable("taken"), 409),
        (PersistenceFailure("driver said X-secret"), 500),
    ],
)
def test_raise_http_status(error, status_code):
    with pytest.raises(HTTPException) as excinfo:
        raise_http(error)

    assert excinfo.value.status_code == status_code
    if status_code == 500:
        assert excinfo.value.detail == "Internal server error"
