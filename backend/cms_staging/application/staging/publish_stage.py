from typing import List, Optional, Sequence, Set, Tuple
from flask import current_app
from cms_staging.domain.exceptions import LivePublishError
from cms_staging.domain.invariants.stage import assert_publishable
from cms_staging.domain.lifecycle.publish import PublishState, assert_publish_transition
from cms_staging.utils.audit import log_action
from cms_staging.utils.cache import CacheLayer
from cms_staging.utils.transaction import transactional
from cms_staging.application.staging.detect_conflicts import detect_conflicts
from cms_staging.application.staging.manage_stage import get_stage, resolve_upstream
from cms_staging.application.staging.phases import DEFAULT_PHASES, Phase, PublishContext
from cms_staging.application.staging.results import (
    ConflictInfo,
    ConflictResolution,
    PublishPhase,
    PublishResult,
    Resolution,
    ResolutionMode,
)


def build_skip_set(
    conflicts: List[ConflictInfo],
    resolution: ConflictResolution,
) -> Set[Tuple[str, str]]:
    """
    Entities that stay in the stage on publish.

    Conflicts resolved as Skip, plus any explicit per-entity Skip decision
    (which also covers entities without a conflict).
    """
    skip = {
        (conflict.entity_type, conflict.entity_id)
        for conflict in conflicts
        if resolution.resolution_for(conflict.entity_type, conflict.entity_id) is Resolution.SKIP
    }

    if resolution.mode is ResolutionMode.PER_ENTITY:
        for key, decision in resolution.decisions.items():
            entity_type, _, entity_id = key.partition(":")
            if decision is Resolution.SKIP and entity_id:
                skip.add((entity_type, entity_id))

    return skip


def publish_stage(
    *,
    stage_id: str,
    resolution: Optional[ConflictResolution] = None,
    cache: Optional[CacheLayer] = None,
    actor_id: Optional[str] = None,
    to_upstream: bool = False,
    phases: Sequence[Phase] = DEFAULT_PHASES,
) -> PublishResult:
    """
    Publish a stage's changes onto live (or onto its upstream stage).

    Responsibilities:
    - Reject publishing live onto itself before touching the database
    - Detect conflicts and honour the resolution policy
    - Run every phase in one transaction; any failure rolls all back
    - Audit the publish and invalidate the stage cache after commit
    """
    log = current_app.logger
    live = current_app.config["LIVE_STAGE_ID"]
    resolution = resolution or ConflictResolution.cancel()
    state = PublishState.NOT_STARTED

    try:
        assert_publishable(stage_id, live_stage_id=live)
    except LivePublishError as exc:
        assert_publish_transition(from_state=state, to_state=PublishState.ABORTED)
        log.warning(f"publish rejected: {exc}")
        return PublishResult.rejected(stage_id, str(exc))

    get_stage(stage_id=stage_id)
    target = resolve_upstream(stage_id) if to_upstream else live

    conflicts = detect_conflicts(stage_id=stage_id, live_stage_id=live)

    if conflicts and resolution.is_cancel:
        assert_publish_transition(from_state=state, to_state=PublishState.ABORTED)
        log.info(
            f"publish of stage {stage_id} cancelled: {len(conflicts)} conflict(s)"
        )
        return PublishResult.cancelled(stage_id, conflicts)

    skip = build_skip_set(conflicts, resolution)
    ctx = PublishContext(stage_id=stage_id, target_stage_id=target, skip=frozenset(skip))

    state = assert_publish_transition(from_state=state, to_state=PublishState.IN_TRANSACTION)
    current: Optional[PublishPhase] = None

    try:
        with transactional():
            for phase in phases:
                current = phase.name
                log.debug(f"stage {stage_id}: executing phase {phase.name}")
                phase.run(ctx)
            current = None

            log_action(
                action="stage.publish",
                entity_type="stage",
                entity_id=stage_id,
                stage_id=stage_id,
                actor_id=actor_id,
                payload={
                    "target_stage_id": target,
                    "resolution": resolution.mode.value,
                    "conflicts": len(conflicts),
                    "skipped": sorted(f"{t}:{i}" for t, i in skip),
                    **ctx.counts,
                },
            )
    except Exception as exc:  # rolled back by transactional(); reported, not raised
        assert_publish_transition(from_state=state, to_state=PublishState.ROLLED_BACK)
        where = f"phase {current}" if current else "commit"
        log.warning(f"publish of stage {stage_id} rolled back in {where}: {exc}")
        return PublishResult.failure(stage_id, current, str(exc), conflicts)

    assert_publish_transition(from_state=state, to_state=PublishState.COMMITTED)
    log.info(f"published stage {stage_id} onto {target}: {ctx.counts}")

    # Only after commit: a rolled back publish must leave the cache alone
    if cache is not None:
        cache.invalidate(stage_id)

    return PublishResult.committed(
        stage_id,
        target,
        ctx.counts,
        conflicts,
        sorted(f"{t}:{i}" for t, i in skip),
    )
