from flask import current_app, g, jsonify, request
from flask_jwt_extended import jwt_required
from cms_staging.utils.decorators import roles_required
from cms_staging.utils.pagination import paginate_cursor
from cms_staging.models.audit_log import AuditLog
from cms_staging.application.staging.manage_stage import (
    create_stage,
    discard_stage,
    get_ancestry,
    get_stage,
    has_changes,
    list_stages,
)
from cms_staging.application.staging.detect_conflicts import detect_conflicts
from cms_staging.application.staging.publish_stage import publish_stage
from cms_staging.application.staging.results import parse_resolution
from cms_staging.domain.lifecycle.publish import PublishState
from cms_staging.normalizers.stage import normalize_stage
from cms_staging.normalizers.conflict import normalize_conflict
from cms_staging.normalizers.publish import normalize_publish_result
from cms_staging.normalizers.audit import normalize_audit_log
from cms_staging.normalizers.pagination import normalize_pagination
from . import v1_bp


def stage_cache():
    return current_app.extensions["stage_cache"]


# ------------------------
# Stages
# ------------------------

@v1_bp.route("/stages", methods=["GET"])
@jwt_required()
@roles_required("admin")
def list_stages_route():
    include_live = request.args.get("include_live") == "1"
    stages = list_stages(include_live=include_live)

    return jsonify({"items": [normalize_stage(s) for s in stages]}), 200


@v1_bp.route("/stages", methods=["POST"])
@jwt_required()
@roles_required("admin")
def create_stage_route():
    data = request.get_json(silent=True) or {}

    stage = create_stage(
        machine_name=data.get("machine_name"),
        label=data.get("label"),
        upstream_id=data.get("upstream_id"),
        stage_id=data.get("id"),
        actor_id=g.actor_id,
    )

    return jsonify(normalize_stage(stage, get_ancestry(stage_id=stage.id))), 201


@v1_bp.route("/stages/<stage_id>", methods=["GET"])
@jwt_required()
@roles_required("admin")
def get_stage_route(stage_id):
    cache = stage_cache()
    summary = cache.get(stage_id, "summary")

    if summary is None:
        stage = get_stage(stage_id=stage_id)
        summary = normalize_stage(stage, get_ancestry(stage_id=stage_id))
        summary["has_changes"] = has_changes(stage_id=stage_id)
        cache.set(stage_id, "summary", summary)

    return jsonify(summary), 200


@v1_bp.route("/stages/<stage_id>/discard", methods=["POST"])
@jwt_required()
@roles_required("admin")
def discard_stage_route(stage_id):
    counts = discard_stage(stage_id=stage_id, actor_id=g.actor_id)
    stage_cache().invalidate(stage_id)

    return jsonify({"stage_id": stage_id, **counts}), 200


# ------------------------
# Publish
# ------------------------

@v1_bp.route("/stages/<stage_id>/conflicts", methods=["GET"])
@jwt_required()
@roles_required("admin")
def stage_conflicts(stage_id):
    get_stage(stage_id=stage_id)
    conflicts = detect_conflicts(stage_id=stage_id)

    return jsonify({
        "stage_id": stage_id,
        "items": [normalize_conflict(c) for c in conflicts],
    }), 200


@v1_bp.route("/stages/<stage_id>/publish", methods=["POST"])
@jwt_required()
@roles_required("admin")
def publish_stage_route(stage_id):
    data = request.get_json(silent=True) or {}
    cache = stage_cache()

    result = publish_stage(
        stage_id=stage_id,
        resolution=parse_resolution(data.get("resolution")),
        cache=cache,
        actor_id=g.actor_id,
        to_upstream=bool(data.get("to_upstream", False)),
    )

    if result.success:
        # the target's pending changes changed too
        cache.invalidate(result.target_stage_id)
        status = 200
    elif result.state is PublishState.ABORTED:
        status = 409 if result.has_conflicts else 400
    else:
        status = 500

    return jsonify(normalize_publish_result(result)), status


# ------------------------
# Audit trail
# ------------------------

@v1_bp.route("/stages/<stage_id>/audit", methods=["GET"])
@jwt_required()
@roles_required("admin")
def stage_audit_log(stage_id):
    limit = min(request.args.get("limit", 20, type=int), 100)

    query = AuditLog.query.filter(AuditLog.stage_id == stage_id)

    if action := request.args.get("action"):
        query = query.filter(AuditLog.action == action)

    logs, meta = paginate_cursor(
        query,
        model=AuditLog,
        limit=limit,
        cursor=request.args.get("cursor"),
    )

    return jsonify(normalize_pagination(logs, normalize_audit_log, cursor=meta)), 200
