"""Read/write resolution through a stage and its ancestors."""

from __future__ import annotations

from uuid import uuid4

import pytest

from cms_staging.application.staging.manage_stage import open_stage_storage
from cms_staging.domain.entities import ConfigFilter, TagEntity, VariableEntity
from cms_staging.domain.exceptions import (
    InvalidStageAncestry,
    RevisionDecodeError,
    UnknownEntityType,
)
from cms_staging.extensions import db
from cms_staging.models.audit_log import AuditLog
from cms_staging.models.config_revision import ConfigRevision
from cms_staging.models.stage_association import StageAssociation
from cms_staging.models.stage_deletion import StageDeletion
from cms_staging.storage import ConfigStorage, StageAwareConfigStorage
from tests.conftest import category


@pytest.fixture
def dev(make_stage, live):
    make_stage("dev")
    return open_stage_storage(stage_id="dev", direct=live)


def tombstones(stage_id):
    return StageDeletion.query.filter_by(stage_id=stage_id).all()


class TestPrecedence:
    def test_tombstone_hides_own_and_ancestor_revisions(self, make_stage, live):
        live.save(category("topics", "Live"))
        make_stage("review")
        make_stage("dev", upstream_id="review")

        open_stage_storage(stage_id="review", direct=live).save(category("topics", "Review"))
        dev = open_stage_storage(stage_id="dev", direct=live)
        dev.delete("category", "topics")

        # a revision pointed at from dev itself still loses to the tombstone
        revision = ConfigRevision()
        revision.entity_type = "category"
        revision.entity_id = "topics"
        revision.payload = category("topics", "Dev").model_dump(mode="json")
        db.session.add(revision)
        db.session.flush()

        association = StageAssociation()
        association.stage_id = "dev"
        association.entity_type = "category"
        association.entity_id = "topics"
        association.target_revision_id = revision.id
        db.session.add(association)
        db.session.commit()

        assert dev.load("category", "topics") is None
        assert dev.exists("category", "topics") is False

    def test_nearest_ancestor_wins(self, make_stage, live):
        make_stage("qa")
        make_stage("review", upstream_id="qa")
        make_stage("dev", upstream_id="review")

        open_stage_storage(stage_id="qa", direct=live).save(category("topics", "Far"))
        open_stage_storage(stage_id="review", direct=live).save(category("topics", "Near"))

        dev = open_stage_storage(stage_id="dev", direct=live)

        assert dev.ancestors == ["review", "qa"]
        assert dev.load("category", "topics").label == "Near"

    def test_falls_back_to_live(self, dev, live):
        live.save(category("news", "News"))

        assert dev.load("category", "news") == category("news", "News")
        assert dev.exists("category", "news") is True
        assert dev.load("category", "missing") is None

    def test_own_stage_beats_ancestor(self, make_stage, live):
        make_stage("review")
        make_stage("dev", upstream_id="review")

        open_stage_storage(stage_id="review", direct=live).save(category("topics", "Review"))
        dev = open_stage_storage(stage_id="dev", direct=live)
        dev.save(category("topics", "Dev"))

        assert dev.load("category", "topics").label == "Dev"


class TestSave:
    def test_round_trip(self, dev):
        tag = TagEntity(id=uuid4(), category_id="topics", label="Python", weight=3)

        dev.save(tag)

        assert dev.load("tag", str(tag.id)) == tag

    def test_save_clears_tombstone(self, dev, live):
        live.save(category("topics"))
        dev.delete("category", "topics")
        assert len(tombstones("dev")) == 1

        dev.save(category("topics", "Back again"))

        assert tombstones("dev") == []
        assert dev.load("category", "topics").label == "Back again"

    def test_save_never_touches_live(self, dev, live):
        live.save(category("topics", "Live"))

        dev.save(category("topics", "Staged"))

        assert live.load("category", "topics").label == "Live"

    def test_resave_keeps_single_association(self, dev):
        dev.save(VariableEntity(key="site_name", value="One"))
        dev.save(VariableEntity(key="site_name", value="Two"))

        associations = StageAssociation.query.filter_by(stage_id="dev").all()

        assert len(associations) == 1
        assert ConfigRevision.query.filter_by(entity_id="site_name").count() == 2
        assert dev.load("variable", "site_name").value == "Two"

    def test_save_is_audited(self, dev):
        revision = dev.save(category("topics"), author_id="editor-7")

        log = AuditLog.query.filter_by(action="stage.save_config").one()

        assert log.stage_id == "dev"
        assert log.actor_id == "editor-7"
        assert log.payload == {"revision_id": revision.id}


class TestDelete:
    def test_staged_only_entity_leaves_no_tombstone(self, dev):
        dev.save(category("drafts"))

        assert dev.delete("category", "drafts") is True

        assert tombstones("dev") == []
        assert dev.exists("category", "drafts") is False

    def test_live_entity_gets_tombstone(self, dev, live):
        live.save(category("topics"))

        dev.delete("category", "topics")

        assert [(t.entity_type, t.entity_id) for t in tombstones("dev")] == [("category", "topics")]
        assert dev.exists("category", "topics") is False
        # live itself is untouched
        assert live.exists("category", "topics") is True

    def test_ancestor_entity_gets_tombstone(self, make_stage, live):
        make_stage("review")
        make_stage("dev", upstream_id="review")
        open_stage_storage(stage_id="review", direct=live).save(category("topics"))
        dev = open_stage_storage(stage_id="dev", direct=live)

        dev.delete("category", "topics")

        assert dev.exists("category", "topics") is False
        assert len(tombstones("dev")) == 1

    def test_deleting_unknown_entity_is_a_noop(self, dev):
        assert dev.delete("category", "ghost") is False
        assert tombstones("dev") == []


class TestList:
    def test_merges_staged_over_live_minus_tombstones(self, dev, live):
        live.save(category("b"))
        live.save(category("c"))
        dev.save(category("a"))
        dev.delete("category", "c")

        ids = [e.entity_id for e in dev.list("category")]

        assert sorted(ids) == ["a", "b"]

    def test_staged_version_replaces_live_version(self, dev, live):
        live.save(category("topics", "Live"))
        dev.save(category("topics", "Staged"))

        entities = dev.list("category")

        assert [e.label for e in entities] == ["Staged"]

    def test_ancestors_are_not_merged(self, make_stage, live):
        make_stage("review")
        make_stage("dev", upstream_id="review")
        open_stage_storage(stage_id="review", direct=live).save(category("topics"))
        dev = open_stage_storage(stage_id="dev", direct=live)

        assert dev.list("category") == []
        assert dev.load("category", "topics") is not None

    def test_filter_and_window(self, dev, live):
        live.save(category("a", weight=1))
        live.save(category("b", weight=5))
        live.save(category("c", weight=5))
        dev.save(category("d", weight=5))

        heavy = dev.list("category", ConfigFilter().with_field("weight", "5"))
        assert sorted(e.entity_id for e in heavy) == ["b", "c", "d"]

        page = dev.list(
            "category",
            ConfigFilter().with_field("weight", "5").with_offset(1).with_limit(1),
        )
        assert len(page) == 1
        assert page[0].entity_id == [e.entity_id for e in heavy][1]

    def test_unknown_entity_type(self, dev):
        with pytest.raises(UnknownEntityType):
            dev.list("widget")


class TestDecodeErrors:
    def _corrupt(self, stage_id, payload):
        association = StageAssociation.query.filter_by(stage_id=stage_id).one()
        association.revision.payload = payload
        db.session.commit()

    def test_invalid_payload_is_an_error_not_absence(self, dev):
        dev.save(category("topics"))
        self._corrupt("dev", {"entity_type": "category", "id": "topics"})

        with pytest.raises(RevisionDecodeError) as exc_info:
            dev.load("category", "topics")

        assert exc_info.value.entity_id == "topics"
        assert exc_info.value.stage_id == "dev"

        with pytest.raises(RevisionDecodeError):
            dev.list("category")

    def test_payload_for_another_entity_is_rejected(self, dev):
        dev.save(category("topics"))
        self._corrupt("dev", category("other").model_dump(mode="json"))

        with pytest.raises(RevisionDecodeError):
            dev.load("category", "topics")


class TestConstruction:
    def test_satisfies_config_storage(self, dev, live):
        assert isinstance(dev, ConfigStorage)
        assert isinstance(live, ConfigStorage)

    def test_live_has_no_overlay(self, live):
        with pytest.raises(ValueError):
            StageAwareConfigStorage(live, "live")

    def test_live_sentinel_dropped_from_ancestors(self, live):
        storage = StageAwareConfigStorage(live, "dev", ["review", "live"])
        assert storage.ancestors == ["review"]

    def test_self_reference_rejected(self, live):
        with pytest.raises(InvalidStageAncestry):
            StageAwareConfigStorage(live, "dev", ["review", "dev"])

    def test_duplicate_ancestor_rejected(self, live):
        with pytest.raises(InvalidStageAncestry):
            StageAwareConfigStorage(live, "dev", ["review", "review"])
