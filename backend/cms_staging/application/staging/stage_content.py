from typing import Optional
from flask import current_app
from cms_staging.extensions import db
from cms_staging.domain.content import CONTENT_TYPES, ITEM, MENU_LINK, URL_ALIAS
from cms_staging.domain.exceptions import StagingError
from cms_staging.models.item import Item
from cms_staging.models.menu_link import MenuLink
from cms_staging.models.stage_deletion import StageDeletion
from cms_staging.models.url_alias import UrlAlias
from cms_staging.utils.audit import log_action
from cms_staging.utils.transaction import transactional
from cms_staging.application.staging.manage_stage import get_stage

CONTENT_MODELS = {
    ITEM: Item,
    URL_ALIAS: UrlAlias,
    MENU_LINK: MenuLink,
}


def _content_model(entity_type: str):
    if entity_type not in CONTENT_TYPES:
        raise StagingError(f"Unknown content type: {entity_type}")
    return CONTENT_MODELS[entity_type]


def stage_content(
    *,
    entity_type: str,
    entity_id: str,
    stage_id: str,
    actor_id: Optional[str] = None,
):
    """
    Move a content row into a stage.

    Responsibilities:
    - Re-point the row's stage membership
    - Clear a pending deletion of the row in that stage
    - Audit logging
    """
    model = _content_model(entity_type)
    get_stage(stage_id=stage_id)

    row = db.session.get(model, entity_id)
    if row is None:
        raise StagingError(f"{entity_type} '{entity_id}' not found")

    with transactional():
        previous = row.stage_id
        row.stage_id = stage_id

        StageDeletion.query.filter_by(
            stage_id=stage_id,
            entity_type=entity_type,
            entity_id=entity_id,
        ).delete(synchronize_session=False)

        log_action(
            action="stage.stage_content",
            entity_type=entity_type,
            entity_id=entity_id,
            stage_id=stage_id,
            actor_id=actor_id,
            payload={"from_stage_id": previous},
        )

    current_app.logger.debug(f"{entity_type}:{entity_id} staged in {stage_id} (was {previous})")
    return row


def mark_content_deleted(
    *,
    stage_id: str,
    entity_type: str,
    entity_id: str,
    actor_id: Optional[str] = None,
) -> StageDeletion:
    """Record that a content row goes away when ``stage_id`` is published."""
    _content_model(entity_type)
    get_stage(stage_id=stage_id)

    tombstone = db.session.get(StageDeletion, (stage_id, entity_type, entity_id))
    if tombstone is not None:
        return tombstone

    with transactional():
        tombstone = StageDeletion()
        tombstone.stage_id = stage_id
        tombstone.entity_type = entity_type
        tombstone.entity_id = entity_id
        tombstone.deleted_by = actor_id
        db.session.add(tombstone)

        log_action(
            action="stage.delete_content",
            entity_type=entity_type,
            entity_id=entity_id,
            stage_id=stage_id,
            actor_id=actor_id,
        )

    return tombstone
