"""Stage-aware config storage.

Decorates the live storage with a stage view:

- load / exists: tombstone in this stage, then this stage's revision, then
  each ancestor's revision (nearest first), then live.
- save: new revision + association upsert in this stage, tombstone cleared.
- delete: association removed; tombstone only if something below this
  stage would otherwise show through.
- list: this stage's staged entities merged over live, minus tombstones.
  Ancestors are not merged into list results.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from flask import current_app
from pydantic import ValidationError

from cms_staging.domain.entities import (
    ConfigEntity,
    ConfigFilter,
    assert_entity_type,
    decode_entity,
    encode_entity,
)
from cms_staging.domain.exceptions import RevisionDecodeError
from cms_staging.domain.invariants.stage import normalize_ancestors
from cms_staging.extensions import db
from cms_staging.models.config_revision import ConfigRevision
from cms_staging.models.stage_association import StageAssociation
from cms_staging.models.stage_deletion import StageDeletion
from cms_staging.storage.direct import DirectConfigStorage, point_association
from cms_staging.utils.audit import log_action
from cms_staging.utils.pagination import apply_window
from cms_staging.utils.transaction import transactional


class StageAwareConfigStorage:
    """
    Config storage bound to one stage and its ancestor chain.

    Writes only ever land in ``stage_id``; ancestors and live are read-only
    from here.
    """

    def __init__(
        self,
        direct: DirectConfigStorage,
        stage_id: str,
        ancestors: Iterable[str] = (),
        *,
        live_stage_id: Optional[str] = None,
    ):
        self.direct = direct
        self.live_stage_id = live_stage_id or direct.live_stage_id

        if stage_id == self.live_stage_id:
            raise ValueError("Live stage has no overlay; use the live storage directly")

        self.stage_id = stage_id
        self.ancestors = normalize_ancestors(
            stage_id, ancestors, live_stage_id=self.live_stage_id
        )

    @classmethod
    def from_ancestry(cls, direct: DirectConfigStorage, ancestry: List[str]) -> "StageAwareConfigStorage":
        """
        Build from a full chain ``[self, parent, ..., live]``.
        The first entry is this stage; the live sentinel is dropped.
        """
        if not ancestry:
            raise ValueError("Ancestry must start with the stage itself")
        return cls(direct, ancestry[0], ancestry[1:])

    # -------------------------------------------------
    # Queries
    # -------------------------------------------------

    def _is_deleted(self, entity_type: str, entity_id: str) -> bool:
        return db.session.query(
            StageDeletion.query.filter_by(
                stage_id=self.stage_id,
                entity_type=entity_type,
                entity_id=entity_id,
            ).exists()
        ).scalar()

    def _active_revision(self, entity_type: str, entity_id: str, stage_id: str) -> Optional[ConfigRevision]:
        return (
            ConfigRevision.query
            .join(StageAssociation, StageAssociation.target_revision_id == ConfigRevision.id)
            .filter(
                StageAssociation.stage_id == stage_id,
                StageAssociation.entity_type == entity_type,
                StageAssociation.entity_id == entity_id,
            )
            .first()
        )

    def _deleted_ids(self, entity_type: str) -> Set[str]:
        rows = (
            db.session.query(StageDeletion.entity_id)
            .filter_by(stage_id=self.stage_id, entity_type=entity_type)
            .all()
        )
        return {row.entity_id for row in rows}

    def _staged_entities(self, entity_type: str) -> List[ConfigEntity]:
        revisions = (
            ConfigRevision.query
            .join(StageAssociation, StageAssociation.target_revision_id == ConfigRevision.id)
            .filter(
                StageAssociation.stage_id == self.stage_id,
                StageAssociation.entity_type == entity_type,
            )
            .order_by(StageAssociation.entity_id.asc())
            .all()
        )
        return [self._decode(revision, self.stage_id) for revision in revisions]

    def _decode(self, revision: ConfigRevision, stage_id: str) -> ConfigEntity:
        try:
            entity = decode_entity(revision.payload)
        except ValidationError as exc:
            raise RevisionDecodeError(
                stage_id, revision.entity_type, revision.entity_id, str(exc)
            ) from exc

        if (entity.entity_type, entity.entity_id) != (revision.entity_type, revision.entity_id):
            raise RevisionDecodeError(
                stage_id,
                revision.entity_type,
                revision.entity_id,
                f"payload describes {entity.entity_type}:{entity.entity_id}",
            )

        return entity

    def _visible_in_ancestors(self, entity_type: str, entity_id: str) -> bool:
        return any(
            self._active_revision(entity_type, entity_id, ancestor) is not None
            for ancestor in self.ancestors
        )

    # -------------------------------------------------
    # ConfigStorage
    # -------------------------------------------------

    def load(self, entity_type: str, entity_id: str) -> Optional[ConfigEntity]:
        assert_entity_type(entity_type)
        log = current_app.logger

        if self._is_deleted(entity_type, entity_id):
            log.debug(f"stage={self.stage_id} {entity_type}:{entity_id} deleted in stage")
            return None

        for stage_id in (self.stage_id, *self.ancestors):
            revision = self._active_revision(entity_type, entity_id, stage_id)
            if revision is not None:
                log.debug(
                    f"stage={self.stage_id} {entity_type}:{entity_id} "
                    f"loaded from staged revision in {stage_id}"
                )
                return self._decode(revision, stage_id)

        log.debug(f"stage={self.stage_id} {entity_type}:{entity_id} falling back to live")
        return self.direct.load(entity_type, entity_id)

    def exists(self, entity_type: str, entity_id: str) -> bool:
        assert_entity_type(entity_type)

        if self._is_deleted(entity_type, entity_id):
            return False

        for stage_id in (self.stage_id, *self.ancestors):
            if self._active_revision(entity_type, entity_id, stage_id) is not None:
                return True

        return self.direct.exists(entity_type, entity_id)

    def save(self, entity: ConfigEntity, *, author_id: Optional[str] = None) -> ConfigRevision:
        entity_type = assert_entity_type(entity.entity_type)
        entity_id = entity.entity_id

        with transactional():
            revision = ConfigRevision()
            revision.entity_type = entity_type
            revision.entity_id = entity_id
            revision.payload = encode_entity(entity)
            revision.author_id = author_id

            db.session.add(revision)
            db.session.flush()  # ensures revision.id

            point_association(
                stage_id=self.stage_id,
                entity_type=entity_type,
                entity_id=entity_id,
                revision_id=revision.id,
            )

            # Re-saving undoes a staged delete
            StageDeletion.query.filter_by(
                stage_id=self.stage_id,
                entity_type=entity_type,
                entity_id=entity_id,
            ).delete(synchronize_session=False)

            log_action(
                action="stage.save_config",
                entity_type=entity_type,
                entity_id=entity_id,
                stage_id=self.stage_id,
                actor_id=author_id,
                payload={"revision_id": revision.id},
            )

        current_app.logger.debug(
            f"stage={self.stage_id} created staged revision {revision.id} "
            f"for {entity_type}:{entity_id}"
        )
        return revision

    def delete(self, entity_type: str, entity_id: str, *, author_id: Optional[str] = None) -> bool:
        assert_entity_type(entity_type)

        with transactional():
            removed = StageAssociation.query.filter_by(
                stage_id=self.stage_id,
                entity_type=entity_type,
                entity_id=entity_id,
            ).delete(synchronize_session=False)

            # Nothing below this stage to suppress -> no tombstone
            shows_through = (
                self._visible_in_ancestors(entity_type, entity_id)
                or self.direct.exists(entity_type, entity_id)
            )

            if shows_through and not self._is_deleted(entity_type, entity_id):
                tombstone = StageDeletion()
                tombstone.stage_id = self.stage_id
                tombstone.entity_type = entity_type
                tombstone.entity_id = entity_id
                tombstone.deleted_by = author_id
                db.session.add(tombstone)

            log_action(
                action="stage.delete_config",
                entity_type=entity_type,
                entity_id=entity_id,
                stage_id=self.stage_id,
                actor_id=author_id,
                payload={"tombstone": shows_through},
            )

        current_app.logger.debug(
            f"stage={self.stage_id} marked {entity_type}:{entity_id} deleted "
            f"(tombstone={shows_through})"
        )
        return bool(removed) or shows_through

    def list(self, entity_type: str, filter: Optional[ConfigFilter] = None) -> List[ConfigEntity]:
        assert_entity_type(entity_type)
        f = filter or ConfigFilter()

        deleted_ids = self._deleted_ids(entity_type)
        staged = self._staged_entities(entity_type)
        live = self.direct.list(entity_type, f.without_window())

        staged_ids = {entity.entity_id for entity in staged}

        # Staged entities override live ones
        result = [
            entity for entity in staged
            if entity.entity_id not in deleted_ids and f.matches(entity)
        ]
        result.extend(
            entity for entity in live
            if entity.entity_id not in staged_ids and entity.entity_id not in deleted_ids
        )

        return apply_window(result, offset=f.offset, limit=f.limit)

    def __repr__(self) -> str:
        return (
            f"StageAwareConfigStorage(stage_id={self.stage_id!r}, "
            f"ancestors={self.ancestors!r})"
        )
