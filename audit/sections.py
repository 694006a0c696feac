"""Turn an audit result into display-ready table sections."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .executor import OptionRow
from .formatting import format_count, human_bytes
from .run import AuditResult

__all__ = [
    "ReportColumn",
    "SectionResult",
    "audit_to_sections",
    "render_text",
]


@dataclass(slots=True)
class ReportColumn:
    key: str
    heading: str
    numeric: bool = False


@dataclass(slots=True)
class SectionResult:
    name: str
    title: str
    columns: List[ReportColumn]
    rows: List[Dict[str, Any]]
    blurb: str = ""
    empty_message: str = ""
    threshold_note: Optional[str] = None
    footnote: str = ""
    meta: Dict[str, Any] = field(default_factory=dict)


_NAME = ReportColumn("name", "Option name")
_AUTOLOAD = ReportColumn("autoload", "Autoload")
_SIZE = ReportColumn("size", "Size", numeric=True)


def _option_rows(rows: Sequence[OptionRow]) -> List[Dict[str, Any]]:
    return [
        {
            "name": row.name,
            "autoload": "yes" if row.autoload else "no",
            "autoload_flag": row.autoload,
            "size": human_bytes(row.size_bytes),
            "size_bytes": row.size_bytes,
        }
        for row in rows
    ]


def audit_to_sections(result: AuditResult) -> Dict[str, SectionResult]:
    sections: Dict[str, SectionResult] = {}
    thresholds = result.thresholds

    sections["summary"] = SectionResult(
        name="summary",
        title="Summary",
        columns=[ReportColumn("label", "Metric"), ReportColumn("value", "Value", numeric=True)],
        rows=[
            {"label": "Total options", "value": format_count(result.total_options)},
            {
                "label": "Autoloaded options",
                "value": f"{format_count(result.autoload_count)} ({result.autoload_percent} percent of total)",
            },
            {
                "label": "Approximate autoloaded data size",
                "value": human_bytes(result.autoload_bytes),
            },
        ],
        footnote=(
            "This size is loaded on most page loads. If this gets silly, you feel it as "
            "slow admin screens and front end requests."
        ),
    )

    sections["top_autoload"] = SectionResult(
        name="top_autoload",
        title="Top autoloaded options by size",
        columns=[_NAME, _SIZE],
        rows=_option_rows(result.top_autoload),
        blurb=(
            "These are loaded into memory on most page loads. If this list is full of junk, "
            "performance will suffer."
        ),
        empty_message=(
            "No autoloaded options detected. That would be unusual. Either this is a very "
            "stripped down install or something is hiding reality."
        ),
        footnote=(
            "If you see single options here measured in megabytes, you probably know which "
            "plugin caused it. Or you will after a quick search."
        ),
        meta={"limit": thresholds.top_autoload_limit},
    )

    sections["large_options"] = SectionResult(
        name="large_options",
        title="Oversized options",
        columns=[_NAME, _AUTOLOAD, _SIZE],
        rows=_option_rows(result.large_options),
        blurb=(
            "Options whose value size crosses a threshold. Large cached blobs, logs, or "
            "abandoned settings dumps."
        ),
        empty_message="No options exceeded the large option threshold in this scan.",
        threshold_note=(
            f"Threshold is currently {thresholds.large_option_threshold} bytes. You can change "
            "this with the audit.large_option_threshold setting."
        ),
        footnote=(
            "Some of these will be legitimate caches or configuration blobs. Some will be dead "
            "weight from plugins you removed years ago."
        ),
        meta={"threshold": thresholds.large_option_threshold},
    )

    sections["large_transients"] = SectionResult(
        name="large_transients",
        title="Large transient like options",
        columns=[_NAME, _AUTOLOAD, _SIZE],
        rows=_option_rows(result.large_transients),
        blurb=(
            "Transients are meant to expire. These ones are big enough to be noticed. Some may "
            "be fine, others are the ghost of caching decisions past."
        ),
        empty_message="No large transient like options detected at or above the threshold.",
        threshold_note=(
            f"Threshold is currently {thresholds.large_transient_threshold} bytes. You can change "
            "this with the audit.large_transient_threshold setting."
        ),
        footnote=(
            "Transients should be disposable. If you see very large ones that never seem to "
            "change, consider whether the code that created them is still installed."
        ),
        meta={"threshold": thresholds.large_transient_threshold},
    )
    return sections


def render_text(result: AuditResult) -> str:
    """Plain-text rendering of the audit for terminals."""

    lines: List[str] = []
    for section in audit_to_sections(result).values():
        lines.append(section.title)
        lines.append("=" * len(section.title))
        if section.name == "summary":
            width = max(len(row["label"]) for row in section.rows)
            for row in section.rows:
                lines.append(f"{row['label'].ljust(width)}  {row['value']}")
            lines.append("")
            continue
        if section.threshold_note:
            lines.append(section.threshold_note)
        if not section.rows:
            lines.append(section.empty_message)
            lines.append("")
            continue
        name_width = max(len(_NAME.heading), *(len(row["name"]) for row in section.rows))
        show_autoload = _AUTOLOAD in section.columns
        header = _NAME.heading.ljust(name_width)
        if show_autoload:
            header += f"  {_AUTOLOAD.heading:<8}"
        header += f"  {_SIZE.heading}"
        lines.append(header)
        for row in section.rows:
            line = row["name"].ljust(name_width)
            if show_autoload:
                line += f"  {row['autoload']:<8}"
            line += f"  {row['size']} ({row['size_bytes']} bytes)"
            lines.append(line)
        lines.append("")
    lines.append(
        "This tool is read only. It will not delete or change any options."
    )
    return "\n".join(lines)
