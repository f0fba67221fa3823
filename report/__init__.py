"""Report formatting: text and markdown architecture reports."""

from report.architecture_report import module_type_label, render_architecture_report

__all__ = [
    "module_type_label",
    "render_architecture_report",
]
