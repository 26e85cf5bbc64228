from typing import Any, Dict
from cms_staging.application.staging.results import ConflictInfo, CrossStage


def normalize_conflict(conflict: ConflictInfo) -> Dict[str, Any]:
    reason = conflict.conflict_type

    if isinstance(reason, CrossStage):
        details = {"other_stages": list(reason.other_stages)}
    else:
        details = {
            "staged_at": reason.staged_at.isoformat(),
            "live_changed": reason.live_changed.isoformat(),
        }

    return {
        "key": conflict.key,
        "entity_type": conflict.entity_type,
        "entity_id": conflict.entity_id,
        "label": conflict.label,
        "type": reason.kind,
        "description": str(reason),
        **details,
    }
