"""
Progress Kernel

Immutable domain snapshots and shared infrastructure for the field
progress reconciliation engine:
- Projects, tasks, daily reports and attendance sheets as frozen values
- Typed exceptions with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"
