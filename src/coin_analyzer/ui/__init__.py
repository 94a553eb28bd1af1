"""
Terminal presentation of analysis results.
"""

from .rich_ui import analysis_panel, batch_table, error_panel, show_analysis, show_error

__all__ = ["analysis_panel", "batch_table", "error_panel", "show_analysis", "show_error"]
