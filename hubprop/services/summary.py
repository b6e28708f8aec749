from __future__ import annotations

from ..models.upload_result import RunResult

"""SUMMARY line rendering for CLI runs."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # Format very small numbers to avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line for a run.

    Format:
    SUMMARY rows={rows} properties={properties} option_errors={n}
    created={created} elapsed_sec={elapsed}

    Examples:
        >>> render_summary_line(RunResult(rows=3, properties=3, option_errors=0,
        ...                               created=3, elapsed_seconds=2.0))
        'SUMMARY rows=3 properties=3 option_errors=0 created=3 elapsed_sec=2'
    """
    return (
        f"SUMMARY rows={result.rows} "
        f"properties={result.properties} "
        f"option_errors={result.option_errors} "
        f"created={result.created} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
