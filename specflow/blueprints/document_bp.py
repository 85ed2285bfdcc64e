"""
SpecFlow
Document API — CRUD, workflow transitions, revisions and diffs.

Endpoints (prefix /api/v1):
    POST   /documents                                  create
    GET    /documents                                  list (stage, type, created_by, limit, offset)
    GET    /documents/<id>                             read + caller permissions
    PUT    /documents/<id>                             content update (snapshots first)
    DELETE /documents/<id>                             delete
    POST   /documents/<id>/transition                  {to_stage}
    GET    /documents/<id>/transitions                 targets the caller may choose
    GET    /documents/<id>/history                     audit trail, oldest first
    GET    /documents/<id>/revisions                   newest first
    GET    /documents/<id>/revisions/<version>         one snapshot
    GET    /documents/<id>/revisions/compare           ?rev1=&rev2=&format=inline|side-by-side
"""

from flask import Blueprint, current_app, jsonify, request

from specflow.blueprints import paginate_query
from specflow.core.exceptions import ValidationError
from specflow.middleware.permission_required import current_caller, require_capability
from specflow.services import document_service, revision_service, workflow
from specflow.services.diff_engine import RenderMode
from specflow.services.permission import Capability, capabilities_for
from specflow.utils.errors import E, api_error
from specflow.utils.helpers import parse_int_arg

document_bp = Blueprint("document", __name__, url_prefix="/api/v1")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _document_payload(doc, caller) -> dict:
    caps = capabilities_for(caller.role)
    payload = doc.to_dict()
    payload["permissions"] = {
        "can_update": Capability.UPDATE in caps,
        "can_delete": Capability.DELETE in caps,
        "can_transition": Capability.TRANSITION in caps,
        "can_link": Capability.LINK in caps,
        "can_comment": Capability.COMMENT in caps,
    }
    payload["available_transitions"] = workflow.available_transitions(doc, caller.role)
    return payload


# ═════════════════════════════════════════════════════════════════════════════
# Documents
# ═════════════════════════════════════════════════════════════════════════════

@document_bp.route("/documents", methods=["POST"])
@require_capability(Capability.CREATE)
def create_document():
    data = dict(_json_body())
    body = data.pop("body", None)
    doc = document_service.create_document(metadata=data, body=body, actor=current_caller())
    return jsonify(doc.to_dict()), 201


@document_bp.route("/documents", methods=["GET"])
@require_capability(Capability.READ)
def list_documents():
    query = document_service.query_documents(
        stage=request.args.get("stage"),
        doc_type=request.args.get("type"),
        created_by=request.args.get("created_by"),
    )
    items, total = paginate_query(query)
    return jsonify({"items": [d.to_dict() for d in items], "total": total}), 200


@document_bp.route("/documents/<document_id>", methods=["GET"])
@require_capability(Capability.READ)
def get_document(document_id):
    doc = document_service.get_document(document_id)
    return jsonify(_document_payload(doc, current_caller())), 200


@document_bp.route("/documents/<document_id>", methods=["PUT"])
@require_capability(Capability.UPDATE)
def update_document(document_id):
    data = _json_body()
    unknown = sorted(set(data) - {"body", "metadata", "expected_version"})
    if unknown:
        return api_error(
            E.VALIDATION_INVALID,
            f"Unknown field(s): {', '.join(unknown)}",
            details={"unknown": unknown},
        )
    if "body" not in data and "metadata" not in data:
        return api_error(E.VALIDATION_REQUIRED, "body or metadata is required")

    expected = data.get("expected_version")
    if expected is not None and (isinstance(expected, bool) or not isinstance(expected, int)):
        return api_error(E.VALIDATION_INVALID, "expected_version must be an integer")

    doc = document_service.update_document(
        document_id,
        actor=current_caller(),
        body=data.get("body"),
        metadata=data.get("metadata"),
        expected_version=expected,
    )
    return jsonify(doc.to_dict()), 200


@document_bp.route("/documents/<document_id>", methods=["DELETE"])
@require_capability(Capability.DELETE)
def delete_document(document_id):
    document_service.delete_document(document_id, actor=current_caller())
    return jsonify({"deleted": True, "id": document_id}), 200


# ═════════════════════════════════════════════════════════════════════════════
# Workflow
# ═════════════════════════════════════════════════════════════════════════════

@document_bp.route("/documents/<document_id>/transition", methods=["POST"])
@require_capability(Capability.TRANSITION)
def transition_document(document_id):
    data = _json_body()
    to_stage = data.get("to_stage")
    if not to_stage or not isinstance(to_stage, str):
        return api_error(E.VALIDATION_REQUIRED, "to_stage is required")

    caller = current_caller()
    result = workflow.transition(document_id, to_stage, caller)
    return jsonify({
        "document": result.document.to_dict(),
        "previous_stage": result.previous_stage,
        "new_stage": result.new_stage,
        "available_transitions": workflow.available_transitions(result.document, caller.role),
    }), 200


@document_bp.route("/documents/<document_id>/transitions", methods=["GET"])
@require_capability(Capability.READ)
def list_transitions(document_id):
    doc = document_service.get_document(document_id)
    return jsonify({
        "document_id": doc.id,
        "current_stage": doc.stage,
        "available_transitions": workflow.available_transitions(doc, current_caller().role),
    }), 200


@document_bp.route("/documents/<document_id>/history", methods=["GET"])
@require_capability(Capability.READ)
def document_history(document_id):
    entries = workflow.workflow_history(document_id)
    return jsonify({"items": [e.to_dict() for e in entries], "total": len(entries)}), 200


# ═════════════════════════════════════════════════════════════════════════════
# Revisions
# ═════════════════════════════════════════════════════════════════════════════

@document_bp.route("/documents/<document_id>/revisions", methods=["GET"])
@require_capability(Capability.READ)
def list_revisions(document_id):
    document_service.get_document(document_id)
    limit = parse_int_arg(
        request.args.get("limit"), "limit",
        default=current_app.config.get("REVISION_LIST_LIMIT"), minimum=1,
    )
    revs = revision_service.list_by_document(document_id, limit=limit)
    return jsonify({
        "items": [r.to_summary() for r in revs],
        "total": revision_service.count_by_document(document_id),
    }), 200


@document_bp.route("/documents/<document_id>/revisions/compare", methods=["GET"])
@require_capability(Capability.READ)
def compare_revisions(document_id):
    rev1 = parse_int_arg(request.args.get("rev1"), "rev1", minimum=1)
    rev2 = parse_int_arg(request.args.get("rev2"), "rev2", minimum=1)
    if rev1 is None or rev2 is None:
        return api_error(E.VALIDATION_REQUIRED, "rev1 and rev2 are required")

    fmt = request.args.get("format", RenderMode.INLINE.value)
    try:
        mode = RenderMode(fmt)
    except ValueError:
        return api_error(
            E.VALIDATION_INVALID,
            f"Unknown format: {fmt!r}",
            details={"allowed": [m.value for m in RenderMode]},
        )

    document_service.get_document(document_id)
    return jsonify(revision_service.compare_revisions(document_id, rev1, rev2, mode)), 200


@document_bp.route("/documents/<document_id>/revisions/<int:version>", methods=["GET"])
@require_capability(Capability.READ)
def get_revision(document_id, version):
    rev = revision_service.get_by_version(document_id, version)
    return jsonify(rev.to_dict()), 200
