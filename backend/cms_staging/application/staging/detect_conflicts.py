from typing import Dict, List, Optional, Tuple
from flask import current_app
from sqlalchemy import and_
from sqlalchemy.orm import aliased
from cms_staging.extensions import db
from cms_staging.domain.content import URL_ALIAS, alias_key
from cms_staging.models.config_revision import ConfigRevision
from cms_staging.models.stage_association import StageAssociation
from cms_staging.models.url_alias import UrlAlias
from cms_staging.application.staging.results import (
    ConflictInfo,
    CrossStage,
    LiveModified,
)


def detect_conflicts(
    *,
    stage_id: str,
    live_stage_id: Optional[str] = None,
) -> List[ConflictInfo]:
    """
    Find entities in a stage that would clobber someone else's work.

    Responsibilities:
    - Config entities also associated with another non-live stage
    - Config entities whose live revision is newer than the staged one
    - URL aliases staged in more than one stage, or changed in live since
    - Read only; never opens a write transaction
    """
    live = live_stage_id or current_app.config["LIVE_STAGE_ID"]

    # Live has nothing to publish onto
    if stage_id == live:
        return []

    conflicts: List[ConflictInfo] = []
    conflicts.extend(_cross_stage_config(stage_id, live))
    conflicts.extend(_live_modified_config(stage_id, live))
    conflicts.extend(_cross_stage_aliases(stage_id, live))
    conflicts.extend(_live_modified_aliases(stage_id, live))

    current_app.logger.info(
        f"detected {len(conflicts)} conflict(s) for stage {stage_id}"
    )
    return conflicts


def _payload_label(payload) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    for name in ("label", "type_name", "key"):
        if payload.get(name):
            return str(payload[name])
    return None


def _cross_stage_config(stage_id: str, live: str) -> List[ConflictInfo]:
    other = aliased(StageAssociation)

    rows = (
        db.session.query(
            StageAssociation.entity_type,
            StageAssociation.entity_id,
            other.stage_id.label("other_stage"),
            ConfigRevision.payload,
        )
        .join(ConfigRevision, ConfigRevision.id == StageAssociation.target_revision_id)
        .join(
            other,
            and_(
                other.entity_type == StageAssociation.entity_type,
                other.entity_id == StageAssociation.entity_id,
                other.stage_id != stage_id,
                other.stage_id != live,
            ),
        )
        .filter(StageAssociation.stage_id == stage_id)
        .order_by(
            StageAssociation.entity_type,
            StageAssociation.entity_id,
            other.stage_id,
        )
        .all()
    )

    # one conflict per entity, listing every other stage
    grouped: Dict[Tuple[str, str], List[str]] = {}
    labels: Dict[Tuple[str, str], Optional[str]] = {}
    for row in rows:
        ref = (row.entity_type, row.entity_id)
        grouped.setdefault(ref, []).append(row.other_stage)
        labels[ref] = _payload_label(row.payload)

    return [
        ConflictInfo(
            entity_type=entity_type,
            entity_id=entity_id,
            conflict_type=CrossStage(tuple(stages)),
        ).with_label(labels[(entity_type, entity_id)])
        for (entity_type, entity_id), stages in grouped.items()
    ]


def _live_modified_config(stage_id: str, live: str) -> List[ConflictInfo]:
    staged_rev = aliased(ConfigRevision)
    live_assoc = aliased(StageAssociation)
    live_rev = aliased(ConfigRevision)

    rows = (
        db.session.query(
            StageAssociation.entity_type,
            StageAssociation.entity_id,
            staged_rev.created_at.label("staged_at"),
            live_rev.created_at.label("live_changed"),
            staged_rev.payload,
        )
        .join(staged_rev, staged_rev.id == StageAssociation.target_revision_id)
        .join(
            live_assoc,
            and_(
                live_assoc.stage_id == live,
                live_assoc.entity_type == StageAssociation.entity_type,
                live_assoc.entity_id == StageAssociation.entity_id,
            ),
        )
        .join(live_rev, live_rev.id == live_assoc.target_revision_id)
        .filter(
            StageAssociation.stage_id == stage_id,
            live_rev.created_at > staged_rev.created_at,
        )
        .order_by(StageAssociation.entity_type, StageAssociation.entity_id)
        .all()
    )

    return [
        ConflictInfo(
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            conflict_type=LiveModified(
                staged_at=row.staged_at,
                live_changed=row.live_changed,
            ),
        ).with_label(_payload_label(row.payload))
        for row in rows
    ]


def _alias_label(alias: str, language: str) -> str:
    return f"URL alias: {alias} ({language})"


def _cross_stage_aliases(stage_id: str, live: str) -> List[ConflictInfo]:
    other = aliased(UrlAlias)

    rows = (
        db.session.query(
            UrlAlias.alias,
            UrlAlias.language,
            other.stage_id.label("other_stage"),
        )
        .join(
            other,
            and_(
                other.alias == UrlAlias.alias,
                other.language == UrlAlias.language,
                other.stage_id != stage_id,
                other.stage_id != live,
            ),
        )
        .filter(UrlAlias.stage_id == stage_id)
        .order_by(UrlAlias.language, UrlAlias.alias, other.stage_id)
        .all()
    )

    grouped: Dict[Tuple[str, str], List[str]] = {}
    for row in rows:
        stages = grouped.setdefault((row.alias, row.language), [])
        if row.other_stage not in stages:
            stages.append(row.other_stage)

    return [
        ConflictInfo(
            entity_type=URL_ALIAS,
            entity_id=alias_key(alias, language),
            conflict_type=CrossStage(tuple(stages)),
        ).with_label(_alias_label(alias, language))
        for (alias, language), stages in grouped.items()
    ]


def _live_modified_aliases(stage_id: str, live: str) -> List[ConflictInfo]:
    live_alias = aliased(UrlAlias)

    rows = (
        db.session.query(
            UrlAlias.alias,
            UrlAlias.language,
            UrlAlias.updated_at.label("staged_at"),
            live_alias.updated_at.label("live_changed"),
        )
        .join(
            live_alias,
            and_(
                live_alias.alias == UrlAlias.alias,
                live_alias.language == UrlAlias.language,
                live_alias.stage_id == live,
            ),
        )
        .filter(
            UrlAlias.stage_id == stage_id,
            live_alias.updated_at > UrlAlias.updated_at,
        )
        .order_by(UrlAlias.language, UrlAlias.alias)
        .all()
    )

    return [
        ConflictInfo(
            entity_type=URL_ALIAS,
            entity_id=alias_key(row.alias, row.language),
            conflict_type=LiveModified(
                staged_at=row.staged_at,
                live_changed=row.live_changed,
            ),
        ).with_label(_alias_label(row.alias, row.language))
        for row in rows
    ]
