"""Centralized constants for the experiment monitor.

Values shared across modules are defined here; consuming modules import
from this module rather than defining their own inline literals.
"""

from __future__ import annotations

MAX_TICKS = 10_000
"""Default tick ceiling; the experiment stops once the clock exceeds it."""

FLUSH_THRESHOLD = 8_192
"""Flush tick-summary rows to Parquet once this in-memory row count is reached."""

UNKNOWN_CATEGORY = "unknown"
"""Ground-truth placeholder written for votes on unregistered locations."""

FLOAT_FORMAT = "g"
"""Preferred format for reals in the text logs; used only when it round-trips."""

DETAIL_FILE_PREFIX = "outputfile"
"""File-name prefix of the per-event detail log."""

HISTOGRAM_FILE_PREFIX = "histogramfile"
"""File-name prefix of the per-agent stored-tuple histogram log."""

SUMMARY_FILE_PREFIX = "summaryfile"
"""File-name prefix of the Parquet tick-summary sidecar."""

LOG_SUFFIX = ".dat"
"""File-name suffix of both text logs."""
