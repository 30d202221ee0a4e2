"""
CSV serialization for admin exports
"""
import csv
import io
from typing import Any, Dict, Iterable, List


def rows_to_csv(rows: Iterable[Dict[str, Any]], fieldnames: List[str]) -> str:
    """Render rows as CSV text with a header line"""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()
