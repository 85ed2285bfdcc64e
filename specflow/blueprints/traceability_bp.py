"""
SpecFlow
Traceability API — parent → child links between documents.

Endpoints (prefix /api/v1):
    POST   /traceability/links                      {parent_id, child_id}
    DELETE /traceability/links?parent_id=&child_id=
    GET    /traceability/<id>/children              one hop down
    GET    /traceability/<id>/parents               one hop up
    GET    /traceability/<id>/descendants           transitive, BFS order
    GET    /traceability/<id>/ancestors             transitive, BFS order
    GET    /traceability/graph/<id>                 nested tree rooted at <id>
"""

from flask import Blueprint, jsonify, request

from specflow.core.exceptions import NotFoundError
from specflow.models.document import Document
from specflow.middleware.permission_required import current_caller, require_capability
from specflow.services import relationship_service
from specflow.services.permission import Capability
from specflow.utils.errors import E, api_error
from specflow.utils.helpers import get_or_raise

traceability_bp = Blueprint("traceability", __name__, url_prefix="/api/v1/traceability")


def _summary(doc) -> dict:
    return {
        "id": doc.id,
        "title": doc.title,
        "type": doc.doc_type,
        "stage": doc.stage,
    }


def _listing(document_id, docs):
    return jsonify({
        "document_id": document_id,
        "items": [_summary(d) for d in docs],
        "total": len(docs),
    }), 200


# ── Links ────────────────────────────────────────────────────────────────────

@traceability_bp.route("/links", methods=["POST"])
@require_capability(Capability.LINK)
def create_link():
    data = request.get_json(silent=True) or {}
    parent_id = data.get("parent_id")
    child_id = data.get("child_id")
    if not parent_id or not child_id:
        return api_error(E.VALIDATION_REQUIRED, "parent_id and child_id are required")

    link = relationship_service.create_link(str(parent_id), str(child_id), actor=current_caller())
    return jsonify(link.to_dict()), 201


@traceability_bp.route("/links", methods=["DELETE"])
@require_capability(Capability.UNLINK)
def delete_link():
    parent_id = request.args.get("parent_id")
    child_id = request.args.get("child_id")
    if not parent_id or not child_id:
        return api_error(E.VALIDATION_REQUIRED, "parent_id and child_id are required")

    if not relationship_service.delete_link(parent_id, child_id, actor=current_caller()):
        raise NotFoundError(resource="DocumentLink", resource_id=f"{parent_id}->{child_id}")
    return jsonify({"deleted": True, "parent_id": parent_id, "child_id": child_id}), 200


# ── Queries ──────────────────────────────────────────────────────────────────

@traceability_bp.route("/<document_id>/children", methods=["GET"])
@require_capability(Capability.READ)
def children(document_id):
    get_or_raise(Document, document_id, "Document")
    return _listing(document_id, relationship_service.find_children(document_id))


@traceability_bp.route("/<document_id>/parents", methods=["GET"])
@require_capability(Capability.READ)
def parents(document_id):
    get_or_raise(Document, document_id, "Document")
    return _listing(document_id, relationship_service.find_parents(document_id))


@traceability_bp.route("/<document_id>/descendants", methods=["GET"])
@require_capability(Capability.READ)
def descendants(document_id):
    get_or_raise(Document, document_id, "Document")
    return _listing(document_id, relationship_service.get_descendants(document_id))


@traceability_bp.route("/<document_id>/ancestors", methods=["GET"])
@require_capability(Capability.READ)
def ancestors(document_id):
    get_or_raise(Document, document_id, "Document")
    return _listing(document_id, relationship_service.get_ancestors(document_id))


@traceability_bp.route("/graph/<document_id>", methods=["GET"])
@require_capability(Capability.READ)
def graph(document_id):
    return jsonify(relationship_service.build_tree(document_id)), 200
