"""Arrow schema definitions for monitor artifacts.

The text logs are the primary record; these schemas describe the Parquet
tick-summary sidecar and the tables rebuilt offline from the text logs, so
that every module works against the same column contracts.
"""

from __future__ import annotations

import pyarrow as pa

SUMMARY_SCHEMA_VERSION = 1

TICK_SUMMARY_SCHEMA = pa.schema(
    [
        ("tick", pa.int64()),
        ("total_messages", pa.int64()),
        ("total_stored_tuples", pa.int64()),
        ("total_bytes_sent", pa.int64()),
        ("storage_load", pa.float64()),
        ("votes_recorded", pa.int64()),
        ("coverage", pa.float64()),
        ("accuracy", pa.float64()),
    ]
)

VOTE_EVENT_SCHEMA = pa.schema(
    [
        ("tick", pa.int64()),
        ("agent_id", pa.string()),
        ("voted_category", pa.string()),
        ("true_category", pa.string()),
        ("radius", pa.float64()),
        ("elapsed_ticks", pa.int64()),
        ("x", pa.float64()),
        ("y", pa.float64()),
        ("z", pa.float64()),
    ]
)

STORED_TUPLE_SCHEMA = pa.schema(
    [
        ("tick", pa.int64()),
        ("node_id", pa.int64()),
        ("identifier", pa.int64()),
        ("hash", pa.int64()),
    ]
)

# Single source of truth for tick-level curve names rendered by viz.
CURVE_NAMES = [
    "coverage",
    "accuracy",
    "storage_load",
    "total_bytes_sent",
]

BATCH_RUNS_SCHEMA = pa.schema(
    [
        ("schema_version", pa.int64()),
        ("run_id", pa.string()),
        ("seed", pa.int64()),
        ("termination_reason", pa.string()),
        ("final_tick", pa.int64()),
        ("ticks_processed", pa.int64()),
        ("voted_objects", pa.int64()),
        ("registered_objects", pa.int64()),
        ("coverage", pa.float64()),
        ("accuracy", pa.float64()),
    ]
)
