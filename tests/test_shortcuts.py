"""
Tests for the ShortcutSource.

The list command is a real subprocess (the test interpreter printing a
canned listing). Execution is checked with Popen patched out.
"""

import subprocess
import sys
from unittest.mock import patch

import pytest

from quickseek.search.result import ResultType, SearchResult
from quickseek.search.sources.shortcuts import ShortcutSource, parse_shortcut_list

LISTING = "\n".join([
    "Resize Images",
    "",
    "Name: header junk",
    "------",
    "===",
    "Folder: Work",
    "  Start Focus Timer  ",
    "Log Water",
])


def _list_command(output=LISTING, exit_code=0):
    code = f"import sys; sys.stdout.write({output!r}); sys.exit({exit_code})"
    return [sys.executable, "-c", code]


class TestParseShortcutList:
    """Test header and separator filtering."""

    def test_filters_headers_and_rules(self):
        assert parse_shortcut_list(LISTING) == ["Resize Images", "Start Focus Timer", "Log Water"]

    def test_empty_output(self):
        assert parse_shortcut_list("") == []

    def test_header_markers_are_case_insensitive(self):
        assert parse_shortcut_list("TYPE: Shortcut\nReal One") == ["Real One"]


class TestShortcutLoading:

    @pytest.mark.asyncio
    async def test_load_runs_list_command(self):
        source = ShortcutSource(list_command=_list_command(), host_app_paths=())
        shortcuts = await source.load()

        assert [s.name for s in shortcuts] == ["Resize Images", "Start Focus Timer", "Log Water"]
        assert shortcuts[0].path == 'shortcuts run "Resize Images"'
        assert shortcuts[0].icon.startswith("data:image/svg+xml")

    @pytest.mark.asyncio
    async def test_stderr_is_captured_too(self):
        code = "import sys; sys.stderr.write('From Stderr\\n')"
        source = ShortcutSource(list_command=[sys.executable, "-c", code], host_app_paths=())
        shortcuts = await source.load()
        assert [s.name for s in shortcuts] == ["From Stderr"]

    @pytest.mark.asyncio
    async def test_host_app_icon_is_preferred(self, tmp_path):
        host = tmp_path / "Shortcuts.app"
        host.mkdir()
        source = ShortcutSource(list_command=_list_command(), host_app_paths=(str(host),))
        shortcuts = await source.load()
        assert shortcuts[0].icon == str(host)

    @pytest.mark.asyncio
    async def test_missing_binary_leaves_catalog_empty(self):
        source = ShortcutSource(list_command=["no-such-shortcuts-binary", "list"])
        assert await source.load() == []
        assert source.shortcuts == []

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_failure(self):
        source = ShortcutSource(list_command=_list_command("Oops", exit_code=3))
        assert await source.load() == []

    @pytest.mark.asyncio
    async def test_slow_list_command_times_out(self):
        code = "import time; time.sleep(10)"
        source = ShortcutSource(list_command=[sys.executable, "-c", code], list_timeout=0.2)
        assert await source.load() == []


class TestShortcutSearch:

    @pytest.mark.asyncio
    async def test_search_before_load_returns_empty_and_loads(self):
        source = ShortcutSource(list_command=_list_command(), host_app_paths=())
        assert await source.search("resize") == []
        assert source.is_loading
        await source.load()
        results = await source.search("resize")
        assert [r.name for r in results] == ["Resize Images"]

    @pytest.mark.asyncio
    async def test_result_shape(self):
        source = ShortcutSource(list_command=_list_command(), host_app_paths=())
        await source.load()
        [result] = await source.search("water")
        assert result.type == ResultType.SHORTCUT
        assert result.category == "Shortcuts"
        assert result.path == 'shortcuts run "Log Water"'
        assert result.relevance_score == 70

    @pytest.mark.asyncio
    async def test_empty_query(self):
        source = ShortcutSource(list_command=_list_command())
        await source.load()
        assert await source.search("") == []


class TestShortcutExecute:
    """Token validation and fire-and-forget spawning."""

    def test_name_with_spaces_round_trips(self):
        source = ShortcutSource()
        assert source.name_from_token(source.token_for("Start Focus Timer")) == "Start Focus Timer"

    def test_malformed_tokens(self):
        source = ShortcutSource()
        assert source.name_from_token("shortcuts list") is None
        assert source.name_from_token("rm -rf /") is None
        assert source.name_from_token('shortcuts run ""') is None

    def test_execute_spawns_run_command(self):
        source = ShortcutSource()
        result = SearchResult(name="Log Water", path='shortcuts run "Log Water"',
                              type=ResultType.SHORTCUT)
        with patch("quickseek.search.sources.shortcuts.subprocess.Popen") as popen:
            assert source.execute(result) is True

        argv = popen.call_args[0][0]
        assert argv == ["shortcuts", "run", "Log Water"]
        assert popen.call_args[1]["stdout"] == subprocess.DEVNULL

    def test_execute_rejects_other_types(self):
        source = ShortcutSource()
        result = SearchResult(name="x", path='shortcuts run "x"', type=ResultType.FILE)
        with patch("quickseek.search.sources.shortcuts.subprocess.Popen") as popen:
            assert source.execute(result) is False
        popen.assert_not_called()

    def test_execute_failure_is_only_logged(self):
        source = ShortcutSource(run_command=["no-such-shortcuts-binary", "run"])
        result = SearchResult(name="x", path='no-such-shortcuts-binary run "x"',
                              type=ResultType.SHORTCUT)
        assert source.execute(result) is False
