"""Formal pipeline invariants.

This file documents what each stage MUST produce. Use it as a reviewer
anchor and system reference.
"""

PIPELINE_INVARIANTS = {
    "schema": [
        "Table 'spectra' has the nine declared columns",
        "spec_id is the primary key (BIGINT, unique, non-null)",
        "Exactly two secondary indexes: idx_environment, idx_redshift",
    ],

    "ingestion": [
        "Normalized frame has the eight record columns in schema order",
        "spec_id is int64, non-null and unique within the frame",
        "environment labels are at most 20 characters",
        "Rows are inserted only; existing spec_id values are skipped, never updated",
    ],

    "processing": [
        "One feature row per spectra row (nothing dropped)",
        "Feature columns are float typed; undefined values are NaN",
    ],

    "analysis": [
        "Summary has one row per non-null environment",
        "Test table has one row per configured feature present in the data",
        "p_value is NaN or within [0, 1]",
    ],
}

STAGE_REQUIREMENTS = {
    "schema": "REQUIRED",
    "ingestion": "REQUIRED",
    "processing": "REQUIRED",
    "analysis": "REQUIRED",
    "visualization": "OPTIONAL",
}
