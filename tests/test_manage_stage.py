import pytest

from cms_staging.application.staging.manage_stage import (
    create_stage,
    discard_stage,
    get_ancestry,
    get_stage,
    has_changes,
    list_stages,
    open_stage_storage,
)
from cms_staging.application.staging.stage_content import mark_content_deleted, stage_content
from cms_staging.domain.exceptions import InvalidStageAncestry, StageNotFound, StagingError
from cms_staging.extensions import db
from cms_staging.models.audit_log import AuditLog
from cms_staging.models.config_revision import ConfigRevision
from cms_staging.models.item import Item
from cms_staging.models.stage_association import StageAssociation
from cms_staging.models.stage_deletion import StageDeletion
from cms_staging.storage import DirectConfigStorage, StageAwareConfigStorage
from tests.conftest import category


class TestCreate:
    def test_defaults_to_live_upstream(self, make_stage):
        stage = make_stage("dev")

        assert stage.id == "dev"
        assert stage.upstream_id == "live"
        assert stage.status == "open"
        assert AuditLog.query.filter_by(action="stage.create").count() == 1

    def test_requires_machine_name_and_label(self, app):
        with pytest.raises(StagingError):
            create_stage(machine_name="", label="Dev")

    def test_unknown_upstream(self, app):
        with pytest.raises(StageNotFound):
            create_stage(machine_name="dev", label="Dev", upstream_id="nowhere")

    def test_duplicate(self, make_stage):
        make_stage("dev")

        with pytest.raises(StagingError):
            make_stage("dev")

    def test_live_id_is_reserved(self, app):
        with pytest.raises(StagingError):
            create_stage(machine_name="live", label="Live")

    def test_list_hides_live(self, make_stage):
        make_stage("dev")
        make_stage("review")

        assert [s.id for s in list_stages()] == ["dev", "review"]
        assert "live" in [s.id for s in list_stages(include_live=True)]

    def test_get_unknown(self, app):
        with pytest.raises(StageNotFound):
            get_stage(stage_id="nope")


class TestAncestry:
    def test_chain_ends_with_live(self, make_stage):
        make_stage("review")
        make_stage("dev", upstream_id="review")

        assert get_ancestry(stage_id="dev") == ["dev", "review", "live"]
        assert get_ancestry(stage_id="live") == ["live"]

    def test_cycle_is_rejected(self, make_stage):
        a = make_stage("a")
        b = make_stage("b", upstream_id="a")
        a.upstream_id = b.id
        db.session.commit()

        with pytest.raises(InvalidStageAncestry):
            get_ancestry(stage_id="a")

    def test_depth_is_bounded(self, app, make_stage):
        make_stage("s1")
        make_stage("s2", upstream_id="s1")
        make_stage("s3", upstream_id="s2")
        app.config["STAGE_ANCESTRY_MAX_DEPTH"] = 2

        with pytest.raises(InvalidStageAncestry):
            get_ancestry(stage_id="s3")

    def test_open_storage(self, make_stage):
        make_stage("review")
        make_stage("dev", upstream_id="review")

        storage = open_stage_storage(stage_id="dev")

        assert isinstance(storage, StageAwareConfigStorage)
        assert storage.stage_id == "dev"
        assert storage.ancestors == ["review"]
        assert isinstance(open_stage_storage(stage_id="live"), DirectConfigStorage)


class TestChanges:
    def test_fresh_stage_has_no_changes(self, make_stage):
        make_stage("dev")
        assert has_changes(stage_id="dev") is False

    def test_staged_config_counts(self, make_stage):
        make_stage("dev")
        open_stage_storage(stage_id="dev").save(category("topics"))

        assert has_changes(stage_id="dev") is True

    def test_staged_item_counts(self, make_stage, make_item):
        make_stage("dev")
        make_item("dev")

        assert has_changes(stage_id="dev") is True

    def test_discard_purges_config_but_keeps_content(self, make_stage, make_item, live):
        make_stage("dev")
        live.save(category("news"))
        storage = open_stage_storage(stage_id="dev", direct=live)
        storage.save(category("topics"))
        storage.delete("category", "news")
        item = make_item("dev")

        counts = discard_stage(stage_id="dev")

        assert counts == {"associations": 1, "tombstones": 1}
        assert StageAssociation.query.filter_by(stage_id="dev").count() == 0
        assert StageDeletion.query.filter_by(stage_id="dev").count() == 0
        # revisions stay as history
        assert ConfigRevision.query.filter_by(entity_id="topics").count() == 1
        assert db.session.get(Item, item.id).stage_id == "dev"
        assert storage.load("category", "news") is not None

    def test_live_cannot_be_discarded(self, make_stage):
        make_stage("dev")
        with pytest.raises(StagingError):
            discard_stage(stage_id="live")


class TestContent:
    def test_stage_content_moves_row(self, make_stage, make_item):
        make_stage("dev")
        item = make_item("live")

        stage_content(entity_type="item", entity_id=item.id, stage_id="dev")

        assert db.session.get(Item, item.id).stage_id == "dev"

    def test_stage_content_clears_pending_deletion(self, make_stage, make_item):
        make_stage("dev")
        item = make_item("live")
        mark_content_deleted(stage_id="dev", entity_type="item", entity_id=item.id)

        stage_content(entity_type="item", entity_id=item.id, stage_id="dev")

        assert StageDeletion.query.count() == 0

    def test_mark_deleted_is_idempotent(self, make_stage, make_item):
        make_stage("dev")
        item = make_item("live")

        mark_content_deleted(stage_id="dev", entity_type="item", entity_id=item.id)
        mark_content_deleted(stage_id="dev", entity_type="item", entity_id=item.id)

        assert StageDeletion.query.count() == 1

    def test_unknown_content_type(self, make_stage):
        make_stage("dev")
        with pytest.raises(StagingError):
            mark_content_deleted(stage_id="dev", entity_type="page", entity_id="1")

    def test_missing_row(self, make_stage):
        make_stage("dev")
        with pytest.raises(StagingError):
            stage_content(entity_type="item", entity_id="missing", stage_id="dev")
