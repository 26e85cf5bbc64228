from typing import Dict, List, Optional
from flask import current_app
from sqlalchemy.exc import IntegrityError
from cms_staging.extensions import db
from cms_staging.domain.exceptions import InvalidStageAncestry, StageNotFound, StagingError
from cms_staging.models.item import Item
from cms_staging.models.menu_link import MenuLink
from cms_staging.models.stage import Stage
from cms_staging.models.stage_association import StageAssociation
from cms_staging.models.stage_deletion import StageDeletion
from cms_staging.models.url_alias import UrlAlias
from cms_staging.storage import ConfigStorage, DirectConfigStorage, StageAwareConfigStorage
from cms_staging.utils.audit import log_action
from cms_staging.utils.transaction import transactional


def _live_stage_id() -> str:
    return current_app.config["LIVE_STAGE_ID"]


def create_stage(
    *,
    machine_name: str,
    label: str,
    upstream_id: Optional[str] = None,
    stage_id: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> Stage:
    """
    Create a workspace stage.

    Edge cases handled:
    - Missing machine name or label
    - Unknown upstream stage
    - Duplicate machine name
    """
    if not machine_name or not label:
        raise StagingError("Both machine_name and label are required")

    live = _live_stage_id()
    stage_id = stage_id or machine_name

    if stage_id == live:
        raise StagingError(f"'{live}' is reserved for the live stage")

    existing = Stage.query.filter(
        (Stage.id == stage_id) | (Stage.machine_name == machine_name)
    ).first()
    if existing:
        raise StagingError(f"Stage '{stage_id}' already exists")

    # No upstream means the stage publishes straight onto live
    if upstream_id and upstream_id != live:
        get_stage(stage_id=upstream_id)

    stage = Stage()
    stage.id = stage_id
    stage.machine_name = machine_name
    stage.label = label
    stage.upstream_id = upstream_id or live
    stage.status = "open"

    try:
        with transactional():
            Stage.ensure_live(live)
            db.session.add(stage)
            db.session.flush()

            log_action(
                action="stage.create",
                entity_type="stage",
                entity_id=stage.id,
                stage_id=stage.id,
                actor_id=actor_id,
                payload={"upstream_id": stage.upstream_id},
            )
    except IntegrityError as exc:
        raise StagingError(f"Stage '{stage_id}' already exists") from exc

    current_app.logger.info(f"created stage {stage.id} (upstream {stage.upstream_id})")
    return stage


def get_stage(*, stage_id: str) -> Stage:
    stage = db.session.get(Stage, stage_id)
    if stage is None:
        raise StageNotFound(stage_id)
    return stage


def list_stages(*, include_live: bool = False) -> List[Stage]:
    query = Stage.query
    if not include_live:
        query = query.filter(Stage.id != _live_stage_id())
    return query.order_by(Stage.created_at.asc(), Stage.id.asc()).all()


def get_ancestry(*, stage_id: str) -> List[str]:
    """
    Chain from the stage up through its upstreams, ending with live.

    [dev, review, live] for dev -> review -> live. A cycle or a chain
    deeper than STAGE_ANCESTRY_MAX_DEPTH raises InvalidStageAncestry.
    """
    live = _live_stage_id()
    max_depth = current_app.config["STAGE_ANCESTRY_MAX_DEPTH"]

    if stage_id == live:
        return [live]

    chain: List[str] = []
    current: Optional[str] = stage_id

    while current and current != live:
        if current in chain:
            current_app.logger.warning(
                f"stage ancestry cycle at {current}: {' -> '.join(chain)}"
            )
            raise InvalidStageAncestry(stage_id, [*chain, current])

        if len(chain) >= max_depth:
            raise InvalidStageAncestry(stage_id, chain)

        chain.append(current)
        current = get_stage(stage_id=current).upstream_id

    chain.append(live)
    return chain


def resolve_upstream(stage_id: str) -> str:
    stage = get_stage(stage_id=stage_id)
    return stage.upstream_id or _live_stage_id()


def open_stage_storage(*, stage_id: str, direct: Optional[DirectConfigStorage] = None) -> ConfigStorage:
    """Config storage as seen from inside ``stage_id``."""
    live = _live_stage_id()
    direct = direct or DirectConfigStorage(live_stage_id=live)

    if stage_id == live:
        return direct

    return StageAwareConfigStorage.from_ancestry(direct, get_ancestry(stage_id=stage_id))


def has_changes(*, stage_id: str) -> bool:
    """True if anything would move or be deleted when the stage is published."""
    if stage_id == _live_stage_id():
        return False

    for query in (
        Item.query.filter_by(stage_id=stage_id),
        UrlAlias.query.filter_by(stage_id=stage_id),
        MenuLink.query.filter_by(stage_id=stage_id),
        StageAssociation.query.filter_by(stage_id=stage_id),
        StageDeletion.query.filter_by(stage_id=stage_id),
    ):
        if db.session.query(query.exists()).scalar():
            return True

    return False


def discard_stage(*, stage_id: str, actor_id: Optional[str] = None) -> Dict[str, int]:
    """
    Drop a stage's staged config and pending deletions.

    Content rows keep their stage membership; revisions are kept for
    history.
    """
    if stage_id == _live_stage_id():
        raise StagingError("The live stage cannot be discarded")

    get_stage(stage_id=stage_id)

    with transactional():
        associations = StageAssociation.query.filter_by(
            stage_id=stage_id
        ).delete(synchronize_session=False)
        tombstones = StageDeletion.query.filter_by(
            stage_id=stage_id
        ).delete(synchronize_session=False)

        log_action(
            action="stage.discard",
            entity_type="stage",
            entity_id=stage_id,
            stage_id=stage_id,
            actor_id=actor_id,
            payload={"associations": associations, "tombstones": tombstones},
        )

    current_app.logger.info(
        f"discarded stage {stage_id}: {associations} association(s), {tombstones} tombstone(s)"
    )
    return {"associations": associations, "tombstones": tombstones}
