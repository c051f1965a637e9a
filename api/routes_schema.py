"""
api.routes_schema - /api/v1/properties.

Lists the property terms a mapping may reference, so scripts can
check a run spec without guessing term spellings.
"""

from flask import jsonify

from api import api_bp
from db import get_session, Property


@api_bp.route("/properties")
def list_properties():
    session = get_session()
    try:
        props = session.query(Property).order_by(Property.term).all()
        return jsonify([p.to_dict() for p in props])
    finally:
        session.close()
