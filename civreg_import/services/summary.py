from __future__ import annotations

from ..models.import_result import ImportResult

"""SUMMARY line rendering.

One line per imported file:

    SUMMARY kind=<kind> rows=<n> valid=<n> invalid=<n> duplicates=<n> skipped=<n> upserted=<n> elapsed_sec=<s>
"""


def format_elapsed(seconds: float) -> str:
    """Render elapsed seconds without scientific notation or trailing zeros."""
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for one ImportResult.

    Examples:
        >>> r = ImportResult(kind="ktp", total_rows=5, valid_count=4, invalid_count=1,
        ...                  duplicate_count=1, inserted_or_updated_count=3, elapsed_seconds=2.0)
        >>> render_summary_line(r)
        'SUMMARY kind=ktp rows=5 valid=4 invalid=1 duplicates=1 skipped=2 upserted=3 elapsed_sec=2'
    """
    return (
        f"SUMMARY kind={result.kind} "
        f"rows={result.total_rows} "
        f"valid={result.valid_count} "
        f"invalid={result.invalid_count} "
        f"duplicates={result.duplicate_count} "
        f"skipped={result.skipped_count} "
        f"upserted={result.inserted_or_updated_count} "
        f"elapsed_sec={format_elapsed(result.elapsed_seconds)}"
    )
