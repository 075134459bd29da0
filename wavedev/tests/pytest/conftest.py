"""
Shared pytest fixtures for wavedev tests.

Provides sample parameter sets, a fake plugin project tree, and fake helper
scripts that stand in for the real extraction subprocess.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip (production tests)
  @pytest.mark.dev       - Development/WIP tests, toggle-able
  @pytest.mark.temporary - Tests with explicit discard flag
"""

from __future__ import annotations

import json
import sys
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from wavedev.build.artifacts import library_extension
from wavedev.core.utils import log
from wavedev.params.models import ParameterDescriptor


# =============================================================================
# Test Data Constants
# =============================================================================

# Format: (id, name, type, default, min, max, unit)
SAMPLE_PARAMS: list[tuple[str, str, str, float, float, float, str | None]] = [
    ("gain", "Gain", "float", 0.0, -24.0, 24.0, "dB"),
    ("mix", "Mix", "float", 1.0, 0.0, 1.0, "%"),
    ("bypass", "Bypass", "bool", 0.0, 0.0, 1.0, None),
]


def make_param(
    param_id: str,
    name: str | None = None,
    kind: str = "float",
    default: float = 0.0,
    min: float = 0.0,
    max: float = 1.0,
    unit: str | None = None,
    value: float | None = None,
    variants: list[str] | None = None,
) -> ParameterDescriptor:
    """Build a descriptor with sensible defaults."""
    return ParameterDescriptor(
        id=param_id,
        name=name or param_id.title(),
        type=kind,
        value=default if value is None else value,
        default=default,
        min=min,
        max=max,
        unit=unit,
        variants=variants,
    )


def sample_params() -> list[ParameterDescriptor]:
    return [
        make_param(pid, name, kind, default, lo, hi, unit)
        for pid, name, kind, default, lo, hi, unit in SAMPLE_PARAMS
    ]


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip (production tests)"
    )
    config.addinivalue_line(
        "markers",
        "dev: development/WIP tests, toggle-able for active development"
    )
    config.addinivalue_line(
        "markers",
        "temporary: tests with explicit discard flag"
    )


@pytest.fixture(autouse=True)
def plain_log_output() -> None:
    """Keep operator output free of ANSI codes so tests can match on text."""
    log.set_color(False)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def params() -> list[ParameterDescriptor]:
    return sample_params()


@pytest.fixture
def params_json() -> str:
    return json.dumps([p.to_wire() for p in sample_params()])


@pytest.fixture
def engine_project(tmp_path: Path) -> Path:
    """Create a minimal plugin project: engine/Cargo.toml, engine/src/lib.rs.

    Returns the project root.
    """
    engine = tmp_path / "my-plugin" / "engine"
    (engine / "src").mkdir(parents=True)
    (engine / "Cargo.toml").write_text(textwrap.dedent("""\
        [package]
        name = "my-plugin-engine"
        version = "0.1.0"

        [lib]
        crate-type = ["cdylib"]
    """))
    (engine / "src" / "lib.rs").write_text("// plugin\n")
    return engine.parent


@pytest.fixture
def fake_library(engine_project: Path) -> Path:
    """A file in target/debug named like the platform's build output."""
    debug_dir = engine_project / "engine" / "target" / "debug"
    debug_dir.mkdir(parents=True)
    ext = library_extension()
    prefix = "" if sys.platform.startswith("win") else "lib"
    library = debug_dir / f"{prefix}my_plugin_engine.{ext}"
    library.write_bytes(b"\x7fELF not really")
    return library


@pytest.fixture
def helper_script(tmp_path: Path) -> Callable[[str], list[str]]:
    """Factory: write a Python helper script body, return its command.

    The script receives ``extract-params <path>`` as argv[1:], like the
    real helper.
    """
    counter = {"n": 0}

    def _make(body: str) -> list[str]:
        counter["n"] += 1
        script = tmp_path / f"helper_{counter['n']}.py"
        script.write_text("import sys, time\n" + textwrap.dedent(body))
        return [sys.executable, str(script)]

    return _make
