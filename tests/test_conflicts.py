from datetime import timedelta

import pytest

from cms_staging.application.staging.detect_conflicts import detect_conflicts
from cms_staging.application.staging.manage_stage import open_stage_storage
from cms_staging.application.staging.results import CrossStage, LiveModified
from cms_staging.extensions import db
from cms_staging.models.base import utc_now
from tests.conftest import category


def backdate(revision, minutes=5):
    revision.created_at = utc_now() - timedelta(minutes=minutes)
    db.session.commit()


@pytest.fixture
def review_and_draft(make_stage, live):
    make_stage("review")
    make_stage("draft")
    return (
        open_stage_storage(stage_id="review", direct=live),
        open_stage_storage(stage_id="draft", direct=live),
    )


def test_cross_stage_conflict(review_and_draft):
    review, draft = review_and_draft
    review.save(category("topics"))
    draft.save(category("topics"))

    conflicts = detect_conflicts(stage_id="review")

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert (conflict.entity_type, conflict.entity_id) == ("category", "topics")
    assert isinstance(conflict.conflict_type, CrossStage)
    assert "draft" in conflict.conflict_type.other_stages
    assert "review" not in conflict.conflict_type.other_stages
    assert conflict.label == "Topics"


def test_cross_stage_lists_every_other_stage(review_and_draft, make_stage, live):
    review, draft = review_and_draft
    make_stage("hotfix")
    review.save(category("topics"))
    draft.save(category("topics"))
    open_stage_storage(stage_id="hotfix", direct=live).save(category("topics"))

    [conflict] = detect_conflicts(stage_id="review")

    assert conflict.conflict_type.other_stages == ("draft", "hotfix")


def test_live_association_is_not_a_cross_stage_conflict(review_and_draft, live):
    review, _ = review_and_draft
    backdate(live.save(category("topics")))
    review.save(category("topics", "Staged"))

    assert detect_conflicts(stage_id="review") == []


def test_live_modified_after_staging(review_and_draft, live):
    review, _ = review_and_draft
    live.save(category("topics", "Original"))
    staged = review.save(category("topics", "Staged"))
    backdate(staged)
    live.save(category("topics", "Hotfix"))

    [conflict] = detect_conflicts(stage_id="review")

    assert isinstance(conflict.conflict_type, LiveModified)
    assert conflict.conflict_type.live_changed > conflict.conflict_type.staged_at
    assert str(conflict.conflict_type).startswith("live was modified (at ")


def test_unrelated_stages_do_not_conflict(review_and_draft):
    review, draft = review_and_draft
    review.save(category("topics"))
    draft.save(category("news"))

    assert detect_conflicts(stage_id="review") == []


def test_url_alias_conflicts_keyed_by_alias_and_language(review_and_draft, make_alias):
    make_alias("review", "/about")
    make_alias("draft", "/about")
    make_alias("draft", "/about", language="fr")

    [conflict] = detect_conflicts(stage_id="review")

    assert conflict.entity_type == "url_alias"
    assert conflict.entity_id == "en:/about"
    assert conflict.label == "URL alias: /about (en)"
    assert conflict.conflict_type.other_stages == ("draft",)


def test_url_alias_changed_in_live(review_and_draft, make_alias):
    staged = make_alias("review", "/about")
    staged.updated_at = utc_now() - timedelta(minutes=5)
    db.session.commit()
    make_alias("live", "/about")

    [conflict] = detect_conflicts(stage_id="review")

    assert conflict.entity_id == "en:/about"
    assert isinstance(conflict.conflict_type, LiveModified)


def test_live_stage_has_no_conflicts(review_and_draft):
    assert detect_conflicts(stage_id="live") == []


def test_detection_is_read_only(review_and_draft):
    review, draft = review_and_draft
    review.save(category("topics"))
    draft.save(category("topics"))

    first = detect_conflicts(stage_id="review")
    second = detect_conflicts(stage_id="review")

    assert [c.key for c in first] == [c.key for c in second]
