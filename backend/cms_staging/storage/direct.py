"""Live (non-staged) config storage.

Reads and writes the canonical table of each config entity type. Every
save also records a revision and points the live stage's association at
it, which is what lets conflict detection see live drift.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Type

from flask import current_app

from cms_staging.domain.entities import (
    CATEGORY,
    ITEM_TYPE,
    SEARCH_FIELD_CONFIG,
    TAG,
    VARIABLE,
    CategoryEntity,
    ConfigEntity,
    ConfigFilter,
    ItemTypeEntity,
    SearchFieldConfigEntity,
    TagEntity,
    VariableEntity,
    assert_entity_type,
    encode_entity,
)
from cms_staging.extensions import db
from cms_staging.models.category import Category
from cms_staging.models.config_revision import ConfigRevision
from cms_staging.models.item_type import ItemType
from cms_staging.models.search_field_config import SearchFieldConfig
from cms_staging.models.stage import Stage
from cms_staging.models.stage_association import StageAssociation
from cms_staging.models.tag import Tag
from cms_staging.models.variable import Variable
from cms_staging.utils.audit import log_action
from cms_staging.utils.pagination import apply_window
from cms_staging.utils.transaction import transactional


@dataclass(frozen=True)
class LiveTable:
    model: Type[Any]
    entity_cls: Type[Any]
    key: str

    def key_column(self):
        return getattr(self.model, self.key)

    def to_entity(self, row) -> ConfigEntity:
        data = {
            name: getattr(row, name)
            for name in self.entity_cls.model_fields
            if name != "entity_type"
        }
        return self.entity_cls.model_validate(data)

    def apply(self, row, entity: ConfigEntity) -> None:
        data = encode_entity(entity)
        data.pop("entity_type", None)
        for name, value in data.items():
            setattr(row, name, value)


LIVE_TABLES = {
    ITEM_TYPE: LiveTable(ItemType, ItemTypeEntity, "type_name"),
    SEARCH_FIELD_CONFIG: LiveTable(SearchFieldConfig, SearchFieldConfigEntity, "id"),
    CATEGORY: LiveTable(Category, CategoryEntity, "id"),
    TAG: LiveTable(Tag, TagEntity, "id"),
    VARIABLE: LiveTable(Variable, VariableEntity, "key"),
}


class DirectConfigStorage:
    """Config storage against the canonical live tables."""

    def __init__(self, *, live_stage_id: str = "live", record_revisions: bool = True):
        self.live_stage_id = live_stage_id
        self.record_revisions = record_revisions

    def _table(self, entity_type: str) -> LiveTable:
        return LIVE_TABLES[assert_entity_type(entity_type)]

    def _row(self, entity_type: str, entity_id: str):
        table = self._table(entity_type)
        return table.model.query.filter(table.key_column() == entity_id).first()

    def load(self, entity_type: str, entity_id: str) -> Optional[ConfigEntity]:
        row = self._row(entity_type, entity_id)
        if row is None:
            return None
        return self._table(entity_type).to_entity(row)

    def exists(self, entity_type: str, entity_id: str) -> bool:
        table = self._table(entity_type)
        return db.session.query(
            table.model.query.filter(table.key_column() == entity_id).exists()
        ).scalar()

    def save(self, entity: ConfigEntity, *, author_id: Optional[str] = None) -> Optional[ConfigRevision]:
        table = self._table(entity.entity_type)
        revision = None

        with transactional():
            row = self._row(entity.entity_type, entity.entity_id)
            if row is None:
                row = table.model()
                db.session.add(row)

            table.apply(row, entity)

            if self.record_revisions:
                revision = self._record_live_revision(entity, author_id)

            log_action(
                action="live.save_config",
                entity_type=entity.entity_type,
                entity_id=entity.entity_id,
                stage_id=self.live_stage_id,
                actor_id=author_id,
            )

        current_app.logger.debug(
            f"live save {entity.entity_type}:{entity.entity_id}"
        )
        return revision

    def delete(self, entity_type: str, entity_id: str, *, author_id: Optional[str] = None) -> bool:
        with transactional():
            row = self._row(entity_type, entity_id)
            if row is None:
                return False

            db.session.delete(row)

            StageAssociation.query.filter_by(
                stage_id=self.live_stage_id,
                entity_type=entity_type,
                entity_id=entity_id,
            ).delete(synchronize_session=False)

            log_action(
                action="live.delete_config",
                entity_type=entity_type,
                entity_id=entity_id,
                stage_id=self.live_stage_id,
                actor_id=author_id,
            )

        current_app.logger.debug(f"live delete {entity_type}:{entity_id}")
        return True

    def list(self, entity_type: str, filter: Optional[ConfigFilter] = None) -> List[ConfigEntity]:
        table = self._table(entity_type)
        rows = table.model.query.order_by(table.key_column().asc()).all()

        entities = [table.to_entity(row) for row in rows]

        if filter is None:
            return entities

        entities = [e for e in entities if filter.matches(e)]
        return apply_window(entities, offset=filter.offset, limit=filter.limit)

    def _record_live_revision(self, entity: ConfigEntity, author_id: Optional[str]) -> ConfigRevision:
        Stage.ensure_live(self.live_stage_id)

        revision = ConfigRevision()
        revision.entity_type = entity.entity_type
        revision.entity_id = entity.entity_id
        revision.payload = encode_entity(entity)
        revision.author_id = author_id

        db.session.add(revision)
        db.session.flush()  # ensures revision.id

        point_association(
            stage_id=self.live_stage_id,
            entity_type=entity.entity_type,
            entity_id=entity.entity_id,
            revision_id=revision.id,
        )
        return revision

    def __repr__(self) -> str:
        return f"DirectConfigStorage(live_stage_id={self.live_stage_id!r})"


def point_association(*, stage_id: str, entity_type: str, entity_id: str, revision_id: str) -> StageAssociation:
    """Upsert: one association per (stage, entity), never duplicated."""
    association = db.session.get(StageAssociation, (stage_id, entity_type, entity_id))

    if association is None:
        association = StageAssociation()
        association.stage_id = stage_id
        association.entity_type = entity_type
        association.entity_id = entity_id
        db.session.add(association)

    association.target_revision_id = revision_id
    db.session.flush()
    return association
