"""Value types describing conflicts, resolution policies and publish results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

from cms_staging.domain.exceptions import StagingError
from cms_staging.domain.lifecycle.publish import PublishState


class PublishPhase(str, Enum):
    CONFIG_TYPES = "config_types"
    CATEGORIES = "categories"
    ITEMS = "items"
    DEPENDENTS = "dependents"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CrossStage:
    """Another non-live stage holds changes to the same entity."""

    kind: ClassVar[str] = "cross_stage"
    other_stages: tuple[str, ...]

    def __str__(self) -> str:
        return f"also modified in: {', '.join(self.other_stages)}"


@dataclass(frozen=True)
class LiveModified:
    """Live changed after the entity was staged."""

    kind: ClassVar[str] = "live_modified"
    staged_at: datetime
    live_changed: datetime

    def __str__(self) -> str:
        return (
            f"live was modified (at {self.live_changed.isoformat()}) "
            f"after staging (at {self.staged_at.isoformat()})"
        )


ConflictType = Union[CrossStage, LiveModified]


@dataclass
class ConflictInfo:
    entity_type: str
    entity_id: str
    conflict_type: ConflictType
    label: Optional[str] = None

    def with_label(self, label: Optional[str]) -> "ConflictInfo":
        self.label = label
        return self

    @property
    def key(self) -> str:
        return f"{self.entity_type}:{self.entity_id}"


class Resolution(str, Enum):
    OVERWRITE = "overwrite"  # publish anyway, last publish wins
    SKIP = "skip"            # leave this entity in the stage


class ResolutionMode(str, Enum):
    CANCEL = "cancel"
    SKIP_ALL = "skip_all"
    OVERWRITE_ALL = "overwrite_all"
    PER_ENTITY = "per_entity"


@dataclass(frozen=True)
class ConflictResolution:
    """
    How a publish treats detected conflicts.

    Per-entity decisions are keyed "entity_type:entity_id".
    """

    mode: ResolutionMode = ResolutionMode.CANCEL
    decisions: Mapping[str, Resolution] = field(default_factory=dict)

    @classmethod
    def cancel(cls) -> "ConflictResolution":
        return cls(ResolutionMode.CANCEL)

    @classmethod
    def skip_all(cls) -> "ConflictResolution":
        return cls(ResolutionMode.SKIP_ALL)

    @classmethod
    def overwrite_all(cls) -> "ConflictResolution":
        return cls(ResolutionMode.OVERWRITE_ALL)

    @classmethod
    def per_entity(cls, decisions: Mapping[str, Union[Resolution, str]]) -> "ConflictResolution":
        return cls(
            ResolutionMode.PER_ENTITY,
            {key: Resolution(value) for key, value in decisions.items()},
        )

    @property
    def is_cancel(self) -> bool:
        return self.mode is ResolutionMode.CANCEL

    def resolution_for(self, entity_type: str, entity_id: str) -> Optional[Resolution]:
        if self.mode is ResolutionMode.SKIP_ALL:
            return Resolution.SKIP
        if self.mode is ResolutionMode.OVERWRITE_ALL:
            return Resolution.OVERWRITE
        if self.mode is ResolutionMode.PER_ENTITY:
            return self.decisions.get(f"{entity_type}:{entity_id}")
        return None


@dataclass
class PublishResult:
    success: bool
    stage_id: str
    target_stage_id: Optional[str] = None
    items_published: int = 0
    items_deleted: int = 0
    dependents_published: int = 0
    conflicts: List[ConflictInfo] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed_phase: Optional[PublishPhase] = None
    error_message: Optional[str] = None
    state: PublishState = PublishState.NOT_STARTED

    @classmethod
    def committed(
        cls,
        stage_id: str,
        target_stage_id: str,
        counts: Dict[str, int],
        conflicts: List[ConflictInfo],
        skipped: List[str],
    ) -> "PublishResult":
        return cls(
            success=True,
            stage_id=stage_id,
            target_stage_id=target_stage_id,
            items_published=counts.get("items_published", 0),
            items_deleted=counts.get("items_deleted", 0),
            dependents_published=counts.get("dependents_published", 0),
            conflicts=conflicts,
            skipped=skipped,
            state=PublishState.COMMITTED,
        )

    @classmethod
    def cancelled(cls, stage_id: str, conflicts: List[ConflictInfo]) -> "PublishResult":
        return cls(
            success=False,
            stage_id=stage_id,
            conflicts=conflicts,
            error_message="Publish cancelled due to conflicts",
            state=PublishState.ABORTED,
        )

    @classmethod
    def rejected(cls, stage_id: str, message: str) -> "PublishResult":
        return cls(
            success=False,
            stage_id=stage_id,
            error_message=message,
            state=PublishState.ABORTED,
        )

    @classmethod
    def failure(
        cls,
        stage_id: str,
        phase: Optional[PublishPhase],
        error: str,
        conflicts: Optional[List[ConflictInfo]] = None,
    ) -> "PublishResult":
        return cls(
            success=False,
            stage_id=stage_id,
            conflicts=conflicts or [],
            failed_phase=phase,
            error_message=error,
            state=PublishState.ROLLED_BACK,
        )

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def parse_resolution(raw: Any) -> ConflictResolution:
    """
    Request body form of a resolution policy.

    "cancel" | "skip_all" | "overwrite_all" | {"entity_type:entity_id": "skip" | "overwrite"}
    Missing means cancel.
    """
    if raw is None:
        return ConflictResolution.cancel()

    if isinstance(raw, dict):
        try:
            return ConflictResolution.per_entity(raw)
        except ValueError as exc:
            raise StagingError(f"Invalid per-entity resolution: {exc}") from exc

    if raw == ResolutionMode.CANCEL.value:
        return ConflictResolution.cancel()
    if raw == ResolutionMode.SKIP_ALL.value:
        return ConflictResolution.skip_all()
    if raw == ResolutionMode.OVERWRITE_ALL.value:
        return ConflictResolution.overwrite_all()

    raise StagingError(f"Unknown resolution: {raw!r}")
