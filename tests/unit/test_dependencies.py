from __future__ import annotations

import pytest

from kintoneops.dependencies import _collect_missing_tools, ensure_cli_tools
from kintoneops.exceptions import DependencyError


def test_ensure_cli_tools_succeeds(monkeypatch) -> None:
    monkeypatch.setattr("kintoneops.dependencies._is_tool_available", lambda executable: True)
    ensure_cli_tools("npx ginue", purpose="export")


def test_ensure_cli_tools_raises(monkeypatch) -> None:
    monkeypatch.setattr("kintoneops.dependencies._is_tool_available", lambda executable: False)
    with pytest.raises(DependencyError, match="Missing external tools for 'upload': npx"):
        ensure_cli_tools("npx kintone-customize-uploader", purpose="upload")


def test_collect_missing_tools_deduplicates_programs(monkeypatch) -> None:
    monkeypatch.setattr("kintoneops.dependencies._is_tool_available", lambda executable: executable == "ginue")

    assert _collect_missing_tools(["npx ginue", "npx kintone-customize-uploader", "ginue", " "]) == ["npx"]
