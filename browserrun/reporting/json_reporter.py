"""JSON report generator for orchestrated runs.

Generates structured JSON reports from a RunResult.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..runner.result_collector import RunResult

REPORT_FILENAME = "browserrun-report.json"


class JsonReporter:
    """Generates JSON reports from run results."""

    def generate(self, result: "RunResult", environments: Optional[list[str]] = None) -> dict[str, Any]:
        """Generate a JSON report from a run result.

        Args:
            result: Aggregated run result.
            environments: Environments the run was started for.

        Returns:
            Report dictionary ready for JSON serialization.
        """
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "mode": result.mode,
            "environments": environments or [],
            "status": "passed" if result.success else "failed",
            "exit_code": result.exit_code,
            "summary": {
                "total": result.total_count,
                "passed": result.total_count - result.failed_count,
                "failed": result.failed_count,
                "skipped": len(result.skipped),
                "duration_ms": result.duration_ms,
            },
            "units": [
                {
                    "label": o.label,
                    "status": "pass" if o.passed else "fail",
                    "exit_code": o.exit_code,
                    "lines": o.line_count,
                    "error": o.error,
                }
                for o in result.outcomes
            ],
            "skipped": list(result.skipped),
            "infra_failure": result.infra_failure,
            "errors": list(result.errors),
        }

    def save(self, report: dict[str, Any], path: Path) -> Path:
        """Save report to a JSON file.

        Args:
            report: Report dictionary.
            path: Output file, or a folder to place ``browserrun-report.json`` in.

        Returns:
            Path to the saved file.
        """
        path = Path(path)
        if path.suffix != ".json":
            path = path / REPORT_FILENAME
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, ensure_ascii=False)

        return path

    def to_json_string(self, report: dict[str, Any], pretty: bool = True) -> str:
        if pretty:
            return json.dumps(report, indent=2, ensure_ascii=False)
        return json.dumps(report, ensure_ascii=False)
