# seo_scout/report/json_report.py

"""
JSON output for SeoScout.

Every command answers with an envelope: ``{"ok": true, "data": ...}`` on
success, ``{"ok": false, "error": "..."}`` for request-level failures.
"""
import json
from pathlib import Path
from typing import Any, Dict, Optional


def envelope(data: Any = None, error: Optional[str] = None) -> Dict[str, Any]:
    """Wrap *data* (anything with ``to_dict()``, or plain JSON data) or *error*."""
    if error is not None:
        return {"ok": False, "error": error}
    if hasattr(data, "to_dict"):
        data = data.to_dict()
    return {"ok": True, "data": data}


def dumps(payload: Any, pretty: bool = False) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2 if pretty else None)


def render_json(payload: Any, output_path: Path | str, pretty: bool = True) -> Path:
    """
    Save *payload* as JSON at *output_path*, creating parent folders.

    Example:
    ```python
    from seo_scout.report.json_report import envelope, render_json
    path = render_json(envelope(report), "reports/touchpoints.json")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w", encoding="utf-8") as f:
        f.write(dumps(payload, pretty=pretty))
        f.write("\n")
    return output
