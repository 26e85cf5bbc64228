from typing import Any, Dict, List, Optional
from cms_staging.models.stage import Stage


def normalize_stage(stage: Stage, ancestry: Optional[List[str]] = None) -> Dict[str, Any]:
    data = {
        "id": stage.id,
        "machine_name": stage.machine_name,
        "label": stage.label,
        "upstream_id": stage.upstream_id,
        "status": stage.status,
        "created_at": stage.created_at.isoformat() if stage.created_at else None,
        "updated_at": stage.updated_at.isoformat() if stage.updated_at else None,
    }

    if ancestry is not None:
        data["ancestry"] = ancestry

    return data
