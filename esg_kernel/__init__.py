"""
ESG Kernel - reporting period core

The persistence and lifecycle core for ESG disclosure reports:
- Reporting periods, sections and data points
- Append-only gap-status history
- Versioned data-type rollover rules
- Full auditability via hash chain
- Cross-period lineage
"""

__version__ = "0.1.0"
