"""
Publish phases, run in order inside one transaction.

Each phase moves the stage's rows onto the target stage and applies the
stage's tombstones. Config phases are placeholders: staged config stays
addressed through its associations and is not copied into live tables.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, FrozenSet, Set, Tuple
from flask import current_app
from sqlalchemy import and_, not_, select
from cms_staging.extensions import db
from cms_staging.domain.content import (
    DEPENDENT_TYPES,
    ITEM,
    MENU_LINK,
    URL_ALIAS,
    alias_key,
)
from cms_staging.models.base import utc_now
from cms_staging.models.item import Item
from cms_staging.models.menu_link import MenuLink
from cms_staging.models.stage_deletion import StageDeletion
from cms_staging.models.url_alias import UrlAlias
from cms_staging.application.staging.results import PublishPhase


@dataclass
class PublishContext:
    stage_id: str
    target_stage_id: str
    # {(entity_type, entity_id)} left behind in the stage
    skip: FrozenSet[Tuple[str, str]] = frozenset()
    now: datetime = field(default_factory=utc_now)
    counts: Dict[str, int] = field(default_factory=dict)

    def skipped_ids(self, entity_type: str) -> Set[str]:
        return {entity_id for kind, entity_id in self.skip if kind == entity_type}


@dataclass(frozen=True)
class Phase:
    name: PublishPhase
    run: Callable[[PublishContext], None]


def publish_config_types(ctx: PublishContext) -> None:
    current_app.logger.debug(f"stage {ctx.stage_id}: no config type rows to move")


def publish_categories(ctx: PublishContext) -> None:
    current_app.logger.debug(f"stage {ctx.stage_id}: no category rows to move")


def _tombstoned(stage_id: str, entity_type: str, skipped: Set[str]):
    query = select(StageDeletion.entity_id).where(
        StageDeletion.stage_id == stage_id,
        StageDeletion.entity_type == entity_type,
    )
    if skipped:
        query = query.where(StageDeletion.entity_id.not_in(skipped))
    return query


def _purge_tombstones(ctx: PublishContext, entity_types=(), *, exclude=()) -> int:
    query = StageDeletion.query.filter(StageDeletion.stage_id == ctx.stage_id)

    if exclude:
        query = query.filter(StageDeletion.entity_type.not_in(exclude))
    else:
        query = query.filter(StageDeletion.entity_type.in_(entity_types))

    # skipped deletions stay pending in the stage
    for entity_type in sorted({kind for kind, _ in ctx.skip}):
        skipped = ctx.skipped_ids(entity_type)
        if skipped:
            query = query.filter(
                not_(
                    and_(
                        StageDeletion.entity_type == entity_type,
                        StageDeletion.entity_id.in_(skipped),
                    )
                )
            )

    return query.delete(synchronize_session=False)


def _move_rows(model, ctx: PublishContext, skipped: Set[str]) -> int:
    query = model.query.filter(model.stage_id == ctx.stage_id)
    if skipped:
        query = query.filter(model.id.not_in(skipped))

    return query.update(
        {model.stage_id: ctx.target_stage_id, model.updated_at: ctx.now},
        synchronize_session=False,
    )


def _delete_rows(model, ctx: PublishContext, entity_type: str, skipped: Set[str]) -> int:
    return (
        model.query
        .filter(model.id.in_(_tombstoned(ctx.stage_id, entity_type, skipped)))
        .delete(synchronize_session=False)
    )


def publish_items(ctx: PublishContext) -> None:
    """
    Responsibilities:
    - Move the stage's items onto the target stage
    - Delete items tombstoned in the stage
    - Purge the stage's tombstones, except dependent ones (next phase)
    """
    skipped = ctx.skipped_ids(ITEM)

    moved = _move_rows(Item, ctx, skipped)
    deleted = _delete_rows(Item, ctx, ITEM, skipped)

    _purge_tombstones(ctx, exclude=DEPENDENT_TYPES)

    ctx.counts["items_published"] = moved
    ctx.counts["items_deleted"] = deleted

    current_app.logger.info(
        f"stage {ctx.stage_id}: published {moved} item(s), deleted {deleted}"
    )


def _skipped_alias_row_ids(ctx: PublishContext) -> Set[str]:
    keys = ctx.skipped_ids(URL_ALIAS)
    if not keys:
        return set()

    rows = UrlAlias.query.filter(UrlAlias.stage_id == ctx.stage_id).all()
    return {
        row.id for row in rows
        if alias_key(row.alias, row.language) in keys or row.id in keys
    }


def publish_dependents(ctx: PublishContext) -> None:
    """
    Responsibilities:
    - Move the stage's URL aliases and menu links onto the target stage
    - Delete those tombstoned in the stage
    - Purge the remaining dependent tombstones
    """
    alias_skip = _skipped_alias_row_ids(ctx)
    link_skip = ctx.skipped_ids(MENU_LINK)

    aliases = _move_rows(UrlAlias, ctx, alias_skip)
    links = _move_rows(MenuLink, ctx, link_skip)

    _delete_rows(UrlAlias, ctx, URL_ALIAS, alias_skip)
    _delete_rows(MenuLink, ctx, MENU_LINK, link_skip)

    # tombstones name alias rows by id, conflicts name them by alias key
    ctx.skip = ctx.skip | {(URL_ALIAS, row_id) for row_id in alias_skip}
    _purge_tombstones(ctx, DEPENDENT_TYPES)

    ctx.counts["dependents_published"] = aliases + links

    current_app.logger.info(
        f"stage {ctx.stage_id}: published {aliases} URL alias(es), {links} menu link(s)"
    )


DEFAULT_PHASES: Tuple[Phase, ...] = (
    Phase(PublishPhase.CONFIG_TYPES, publish_config_types),
    Phase(PublishPhase.CATEGORIES, publish_categories),
    Phase(PublishPhase.ITEMS, publish_items),
    Phase(PublishPhase.DEPENDENTS, publish_dependents),
)
