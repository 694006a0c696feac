from __future__ import annotations

from audit import AuditResult, AuditThresholds
from audit.executor import OptionRow
from audit.sections import audit_to_sections, render_text


def _result(**overrides) -> AuditResult:
    payload = dict(
        total_options=4,
        autoload_count=1,
        autoload_bytes=60000,
        top_autoload=(OptionRow("big_cache", True, 60000),),
        large_options=(OptionRow("big_cache", True, 60000),),
        large_transients=(),
        thresholds=AuditThresholds(),
        generated_utc="2024-01-01T00:00:00Z",
    )
    payload.update(overrides)
    return AuditResult(**payload)


def test_sections_format_sizes_and_summary() -> None:
    sections = audit_to_sections(_result())

    assert list(sections) == ["summary", "top_autoload", "large_options", "large_transients"]
    summary_values = {row["label"]: row["value"] for row in sections["summary"].rows}
    assert summary_values["Total options"] == "4"
    assert summary_values["Autoloaded options"] == "1 (25 percent of total)"
    assert summary_values["Approximate autoloaded data size"] == "58.6 KB"

    row = sections["large_options"].rows[0]
    assert row["size"] == "58.6 KB"
    assert row["size_bytes"] == 60000
    assert row["autoload"] == "yes"
    assert "50000 bytes" in sections["large_options"].threshold_note
    assert [column.key for column in sections["top_autoload"].columns] == ["name", "size"]


def test_render_text_shows_empty_messages() -> None:
    text = render_text(_result(top_autoload=(), large_options=(), autoload_count=0, autoload_bytes=0))

    assert "No autoloaded options detected." in text
    assert "No options exceeded the large option threshold in this scan." in text
    assert "No large transient like options detected at or above the threshold." in text
    assert "0 (0 percent of total)" in text


def test_render_text_lists_rows_with_byte_counts() -> None:
    text = render_text(_result())

    assert "big_cache" in text
    assert "58.6 KB (60000 bytes)" in text
    assert text.rstrip().endswith("It will not delete or change any options.")
