from flask import current_app, g, jsonify, request
from flask_jwt_extended import jwt_required
from cms_staging.utils.decorators import roles_required
from cms_staging.domain.entities import ConfigFilter, assert_entity_type, decode_entity, encode_entity
from cms_staging.domain.exceptions import StagingError
from cms_staging.application.staging.manage_stage import get_stage, open_stage_storage
from . import v1_bp


def _storage(stage_id):
    get_stage(stage_id=stage_id)
    return open_stage_storage(stage_id=stage_id)


@v1_bp.route("/stages/<stage_id>/config/<entity_type>", methods=["GET"])
@jwt_required()
@roles_required("admin")
def list_config(stage_id, entity_type):
    assert_entity_type(entity_type)

    f = ConfigFilter(
        field=request.args.get("field"),
        value=request.args.get("value"),
        limit=request.args.get("limit", type=int),
        offset=request.args.get("offset", type=int),
    )

    try:
        entities = _storage(stage_id).list(entity_type, f)
    except ValueError as exc:
        raise StagingError(str(exc)) from exc

    return jsonify({"items": [encode_entity(e) for e in entities]}), 200


@v1_bp.route("/stages/<stage_id>/config/<entity_type>/<entity_id>", methods=["GET"])
@jwt_required()
@roles_required("admin")
def load_config(stage_id, entity_type, entity_id):
    entity = _storage(stage_id).load(entity_type, entity_id)

    if entity is None:
        return jsonify({"error": f"{entity_type} '{entity_id}' not found"}), 404

    return jsonify(encode_entity(entity)), 200


@v1_bp.route("/stages/<stage_id>/config/<entity_type>/<entity_id>", methods=["PUT"])
@jwt_required()
@roles_required("admin")
def save_config(stage_id, entity_type, entity_id):
    assert_entity_type(entity_type)
    data = request.get_json(silent=True) or {}

    # URL decides the type; the body cannot smuggle in another one
    entity = decode_entity({**data, "entity_type": entity_type})

    if entity.entity_id != entity_id:
        return jsonify({"error": "Entity id does not match URL"}), 400

    revision = _storage(stage_id).save(entity, author_id=g.actor_id)
    current_app.extensions["stage_cache"].invalidate(stage_id)

    return jsonify({
        "entity": encode_entity(entity),
        "revision_id": revision.id if revision is not None else None,
    }), 200


@v1_bp.route("/stages/<stage_id>/config/<entity_type>/<entity_id>", methods=["DELETE"])
@jwt_required()
@roles_required("admin")
def delete_config(stage_id, entity_type, entity_id):
    deleted = _storage(stage_id).delete(entity_type, entity_id, author_id=g.actor_id)
    current_app.extensions["stage_cache"].invalidate(stage_id)

    return jsonify({"deleted": deleted}), 200
