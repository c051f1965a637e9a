"""
api.routes_records - /api/v1/records read endpoints.
"""

from flask import request, jsonify

import config
from api import api_bp
from db import get_session, Record


@api_bp.route("/records")
def list_records():
    """GET /api/v1/records?resource_type=items&limit=100&offset=0"""
    resource_type = request.args.get("resource_type", "").strip()
    limit = min(int(request.args.get("limit", config.API_DEFAULT_LIMIT)),
                config.API_MAX_LIMIT)
    offset = int(request.args.get("offset", 0))

    session = get_session()
    try:
        q = session.query(Record)
        if resource_type:
            q = q.filter(Record.resource_type == resource_type)
        total = q.count()
        records = q.order_by(Record.id).offset(offset).limit(limit).all()
        return jsonify({
            "total": total,
            "offset": offset,
            "limit": limit,
            "records": [r.to_dict() for r in records],
        })
    finally:
        session.close()


@api_bp.route("/records/<int:record_id>")
def get_record(record_id: int):
    """GET /api/v1/records/{id}"""
    session = get_session()
    try:
        record = session.get(Record, record_id)
        if not record:
            return jsonify({"error": "not found"}), 404
        return jsonify(record.to_dict())
    finally:
        session.close()
