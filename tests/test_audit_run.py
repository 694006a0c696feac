"""End-to-end tests for the options audit against SQLite stores."""

from __future__ import annotations

import sqlite3

import pytest

from audit import (
    AuditThresholds,
    OptionsAuditor,
    PermissionDenied,
    StoreLayout,
    StoreUnavailable,
    run_audit,
)
from audit import executor as audit_executor
from audit.executor import OptionRow, execute_scalar, open_store
from audit.planner import QuerySpec, plan_queries


def _names(rows):
    return [row.name for row in rows]


def test_empty_store_produces_zeroed_result(make_store) -> None:
    result = run_audit(make_store())

    assert result.total_options == 0
    assert result.autoload_count == 0
    assert result.autoload_bytes == 0
    assert result.autoload_percent == 0
    assert result.top_autoload == ()
    assert result.large_options == ()
    assert result.large_transients == ()


def test_large_autoloaded_option_is_listed_but_not_as_transient(make_store) -> None:
    db_path = make_store([("big_plugin_cache", "x" * 60000, "yes")])

    result = run_audit(db_path)

    assert result.total_options == 1
    assert result.autoload_count == 1
    assert result.autoload_bytes == 60000
    assert result.top_autoload == (OptionRow("big_plugin_cache", True, 60000),)
    assert result.large_options == (OptionRow("big_plugin_cache", True, 60000),)
    assert result.large_transients == ()


def test_transient_below_option_threshold_only_listed_as_transient(make_store) -> None:
    db_path = make_store([("_transient_feed_abc", "y" * 25000, "no")])

    result = run_audit(db_path)

    assert result.autoload_count == 0
    assert result.top_autoload == ()
    assert result.large_options == ()
    assert result.large_transients == (OptionRow("_transient_feed_abc", False, 25000),)


def test_mixed_store_summary_and_ordering(make_store) -> None:
    db_path = make_store(
        [
            ("siteurl", "https://example.test", "yes"),
            ("blogname", "Example", "yes"),
            ("huge_log", b"\x00" * 80000, "no"),
            ("_site_transient_update_plugins", "z" * 30000, "no"),
            ("_transient_timeout_feed", "1700000000", "no"),
            ("theme_mods", "m" * 55000, "yes"),
            ("alpha_blob", "a" * 55000, "yes"),
        ]
    )

    result = run_audit(db_path)

    assert result.total_options == 7
    assert result.autoload_count == 4
    assert result.autoload_bytes == len("https://example.test") + len("Example") + 55000 + 55000
    assert result.autoload_percent == 57
    assert _names(result.top_autoload) == ["alpha_blob", "theme_mods", "siteurl", "blogname"]
    assert _names(result.large_options) == ["huge_log", "alpha_blob", "theme_mods"]
    assert result.large_options[0].autoload is False
    assert _names(result.large_transients) == ["_site_transient_update_plugins"]


def test_sizes_are_byte_lengths_for_multibyte_text(make_store) -> None:
    value = "é" * 30000  # two bytes per character in UTF-8
    db_path = make_store([("accented", value, "yes")])

    result = run_audit(db_path)

    assert result.autoload_bytes == 60000
    assert _names(result.large_options) == ["accented"]


def test_prefix_match_treats_underscore_literally(make_store) -> None:
    db_path = make_store(
        [
            ("xtransientx_lookalike", "q" * 30000, "no"),
            ("_transient_real", "q" * 30000, "no"),
        ]
    )

    result = run_audit(db_path)

    assert _names(result.large_transients) == ["_transient_real"]


def test_top_autoload_limit_and_custom_thresholds(make_store) -> None:
    rows = [(f"opt_{idx:02d}", "v" * (100 + idx), "yes") for idx in range(10)]
    db_path = make_store(rows)

    result = run_audit(db_path, AuditThresholds(3, 105, 1))

    assert _names(result.top_autoload) == ["opt_09", "opt_08", "opt_07"]
    assert _names(result.large_options) == ["opt_09", "opt_08", "opt_07", "opt_06", "opt_05"]


def test_non_positive_overrides_match_defaults(make_store) -> None:
    rows = [(f"opt_{idx}", "v" * (idx * 10000), "yes") for idx in range(1, 8)]
    rows.append(("_transient_a", "t" * 21000, "no"))
    db_path = make_store(rows)

    baseline = run_audit(db_path)
    overridden = run_audit(db_path, AuditThresholds.resolve(0, -1, 0))

    assert overridden.thresholds == baseline.thresholds
    assert overridden.top_autoload == baseline.top_autoload
    assert overridden.large_options == baseline.large_options
    assert overridden.large_transients == baseline.large_transients


@pytest.mark.parametrize("limit", [0, -1])
def test_unresolved_non_positive_limit_uses_default(make_store, limit: int) -> None:
    rows = [(f"auto_{idx:02d}", "a" * (10 + idx), "yes") for idx in range(80)]
    db_path = make_store(rows)

    default = run_audit(db_path)
    overridden = OptionsAuditor(db_path, AuditThresholds(top_autoload_limit=limit)).run()

    assert len(default.top_autoload) == 50
    assert overridden.top_autoload == default.top_autoload


def test_unresolved_negative_size_thresholds_use_defaults(make_store) -> None:
    db_path = make_store(
        [
            ("small_option", "s" * 10, "yes"),
            ("_transient_small", "t" * 10, "no"),
        ]
    )

    result = run_audit(db_path, AuditThresholds(large_option_threshold=-1, large_transient_threshold=-1))

    assert result.large_options == ()
    assert result.large_transients == ()


def test_out_of_range_thresholds_complete_the_audit(make_store) -> None:
    rows = [(f"opt_{idx}", "v" * 60000, "yes") for idx in range(3)]
    rows.append(("_transient_big", "t" * 30000, "no"))
    db_path = make_store(rows)

    result = run_audit(db_path, AuditThresholds(10**20, 10**20, 10**20))

    assert result.total_options == 4
    assert len(result.top_autoload) == 3
    assert result.large_options == ()
    assert result.large_transients == ()


def test_listed_rows_are_capped(make_store) -> None:
    rows = [(f"bulk_{idx:03d}", "b" * 10, "no") for idx in range(250)]
    db_path = make_store(rows)

    result = run_audit(db_path, AuditThresholds(large_option_threshold=1))

    assert len(result.large_options) == 200


def test_custom_layout_reads_alternate_table_and_autoload_values(make_store) -> None:
    db_path = make_store(
        [("a", "1" * 10, "on"), ("b", "1" * 20, "auto-on"), ("c", "1" * 30, "off")],
        table="site_options",
    )
    layout = StoreLayout(table="site_options", autoload_values=("yes", "on", "auto-on"))

    result = run_audit(db_path, layout=layout)

    assert result.autoload_count == 2
    assert result.autoload_bytes == 30
    assert _names(result.top_autoload) == ["b", "a"]


def test_missing_store_raises_store_unavailable(tmp_path) -> None:
    missing = tmp_path / "nope.db"

    with pytest.raises(StoreUnavailable):
        run_audit(missing)

    assert not missing.exists()


def test_missing_table_raises_store_unavailable(tmp_path) -> None:
    db_path = tmp_path / "empty.db"
    sqlite3.connect(db_path).close()

    with pytest.raises(StoreUnavailable, match="wp_options"):
        run_audit(db_path)


def test_failure_in_one_query_fails_whole_audit(make_store, monkeypatch) -> None:
    db_path = make_store([("big", "x" * 60000, "yes")])
    original = audit_executor.execute_rows

    def flaky(conn, spec, layout):
        if spec.name == "large_transients":
            raise StoreUnavailable("simulated outage", query=spec.name)
        return original(conn, spec, layout)

    monkeypatch.setattr("audit.run.execute_rows", flaky)

    with pytest.raises(StoreUnavailable) as excinfo:
        run_audit(db_path)
    assert excinfo.value.query == "large_transients"


def test_sqlite_errors_are_wrapped(make_store) -> None:
    db_path = make_store()
    layout = StoreLayout()
    conn = open_store(db_path, layout)
    try:
        spec = plan_queries(AuditThresholds(), StoreLayout(table="missing_table")).total_options
        with pytest.raises(StoreUnavailable) as excinfo:
            execute_scalar(conn, spec)
        assert excinfo.value.query == "total_options"
        assert isinstance(excinfo.value.__cause__, sqlite3.Error)
    finally:
        conn.close()


def test_store_is_opened_read_only(make_store) -> None:
    db_path = make_store([("a", "1", "yes")])
    conn = open_store(db_path, StoreLayout())
    try:
        with pytest.raises(sqlite3.Error):
            conn.execute("DELETE FROM wp_options")
    finally:
        conn.close()


def test_permission_denied_issues_no_queries(make_store, monkeypatch) -> None:
    db_path = make_store([("a", "1", "yes")])
    opened = []

    def tracking_open(*args, **kwargs):
        opened.append(args)
        raise AssertionError("store must not be opened")

    monkeypatch.setattr("audit.run.open_store", tracking_open)
    auditor = OptionsAuditor(db_path, access_check=lambda: False)

    with pytest.raises(PermissionDenied):
        auditor.run()
    assert opened == []


def test_granted_access_runs_audit(make_store) -> None:
    db_path = make_store([("a", "1", "yes")])

    result = OptionsAuditor(db_path, access_check=lambda: True).run()

    assert result.total_options == 1


def test_unbindable_parameters_are_wrapped(make_store) -> None:
    db_path = make_store()
    conn = open_store(db_path, StoreLayout())
    try:
        spec = QuerySpec(name="oversized_param", sql="SELECT ?", params=(10**20,), kind="scalar")
        with pytest.raises(StoreUnavailable) as excinfo:
            execute_scalar(conn, spec)
        assert excinfo.value.query == "oversized_param"
        assert isinstance(excinfo.value.__cause__, OverflowError)
    finally:
        conn.close()
