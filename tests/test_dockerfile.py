"""Contracts for the container image build and HEALTHCHECK."""

from __future__ import annotations

import re
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def _dockerfile() -> str:
    path = ROOT / "Dockerfile"
    assert path.exists(), "Missing Dockerfile"
    return path.read_text(encoding="utf-8")


def test_two_stage_build() -> None:
    stages = re.findall(r"^FROM\s+\S+", _dockerfile(), flags=re.MULTILINE)
    assert len(stages) == 2


def test_dependencies_cached_before_source() -> None:
    text = _dockerfile()
    manifest = text.index("COPY pyproject.toml")
    placeholder = text.index("touch src/main.py")
    source = text.index("COPY src ./src")
    assert manifest < placeholder < source


def test_runtime_has_ca_certificates() -> None:
    runtime = _dockerfile().split("FROM python:3.12-slim\n", 1)[1]
    assert "ca-certificates" in runtime
    assert "COPY --from=build" in runtime


def test_healthcheck_runs_probe_every_30s() -> None:
    text = _dockerfile()
    assert re.search(r"HEALTHCHECK --interval=30s\b", text)
    assert 'CMD ["safety-probe"]' in text


def test_entrypoint_has_no_arguments() -> None:
    assert 'CMD ["safety"]' in _dockerfile()


def test_console_scripts_declared() -> None:
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    assert 'safety = "src.main:main"' in pyproject
    assert 'safety-probe = "src.health.probe:cli"' in pyproject


def test_build_context_is_only_package_files() -> None:
    copied = re.findall(r"^COPY\s+(?!--from)(.+?)\s+\S+$", _dockerfile(), flags=re.MULTILINE)
    assert copied == ["pyproject.toml", "src"]
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    assert "readme" not in pyproject
