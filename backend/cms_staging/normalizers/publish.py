from typing import Any, Dict
from cms_staging.application.staging.results import PublishResult
from .conflict import normalize_conflict


def normalize_publish_result(result: PublishResult) -> Dict[str, Any]:
    """
    Notes:
    - failed_phase is null unless a phase raised
    - a cancelled publish has state "aborted" and carries its conflicts
    """
    return {
        "success": result.success,
        "state": result.state.value,
        "stage_id": result.stage_id,
        "target_stage_id": result.target_stage_id,
        "items_published": result.items_published,
        "items_deleted": result.items_deleted,
        "dependents_published": result.dependents_published,
        "has_conflicts": result.has_conflicts,
        "conflicts": [normalize_conflict(c) for c in result.conflicts],
        "skipped": result.skipped,
        "failed_phase": result.failed_phase.value if result.failed_phase else None,
        "error_message": result.error_message,
    }
