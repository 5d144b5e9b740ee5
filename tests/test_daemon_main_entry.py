from __future__ import annotations

import runpy
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for sub in ("apps/daemon", "packages/core", "packages/link"):
    sys.path.insert(0, str(ROOT / sub))

import pjcontrol_app.__main__ as daemon_main


def test_main_defaults_to_run(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(daemon_main, "_cli_main", lambda argv=None: calls.append(list(argv or [])) or 0)

    rc = daemon_main.main([])
    assert rc == 0
    assert calls == [["run"]]


def test_main_passes_through_args(monkeypatch) -> None:
    calls: list[list[str]] = []
    monkeypatch.setattr(daemon_main, "_cli_main", lambda argv=None: calls.append(list(argv or [])) or 0)

    rc = daemon_main.main(["power", "on"])
    assert rc == 0
    assert calls == [["power", "on"]]


def test_main_module_runpath_without_package_context() -> None:
    main_path = ROOT / "apps" / "daemon" / "pjcontrol_app" / "__main__.py"
    result = runpy.run_path(str(main_path))
    assert "main" in result
