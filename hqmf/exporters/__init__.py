"""
Exporters for parsed data criteria.
"""

from .json_export import export_json, export_json_summary

__all__ = ["export_json", "export_json_summary"]
