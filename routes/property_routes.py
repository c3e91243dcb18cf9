from flask import Blueprint, request, jsonify
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
import logging

from config.database import SessionLocal
from services.property_service import PropertyService
from services.title_service import TitleService

logger = logging.getLogger(__name__)

property_bp = Blueprint('property', __name__, url_prefix='/properties')


def get_authenticated_user_id():
    """Return int user_id from JWT or None."""
    try:
        verify_jwt_in_request(optional=True)
        uid = get_jwt_identity()
        if uid is not None:
            return int(uid)
    except Exception as e:
        logger.info("JWT verify error: %s", e)
    return None


def error_status(error: str) -> int:
    if 'not found' in error.lower():
        return 404
    if 'already exists' in error.lower():
        return 409
    if 'error' in error.lower():
        return 500
    return 400


@property_bp.route('', methods=['POST'])
def create_property():
    db = SessionLocal()
    try:
        user_id = get_authenticated_user_id()
        if not user_id:
            return jsonify({'success': False, 'message': 'Authentication required'}), 401

        data = request.get_json(silent=True)
        property_service = PropertyService(db)
        success, result, error = property_service.create_property(data)

        if success:
            result['success'] = True
            return jsonify(result), 201
        return jsonify({'success': False, 'message': error}), error_status(error)
    finally:
        db.close()


@property_bp.route('/<ref>', methods=['PATCH'])
def update_property(ref):
    db = SessionLocal()
    try:
        user_id = get_authenticated_user_id()
        if not user_id:
            return jsonify({'success': False, 'message': 'Authentication required'}), 401

        data = request.get_json(silent=True)
        property_service = PropertyService(db)
        success, result, error = property_service.update_property(ref, data)

        if success:
            result['success'] = True
            return jsonify(result), 200
        return jsonify({'success': False, 'message': error}), error_status(error)
    finally:
        db.close()


@property_bp.route('/<ref>/regenerate-title', methods=['POST'])
def regenerate_title(ref):
    db = SessionLocal()
    try:
        user_id = get_authenticated_user_id()
        if not user_id:
            return jsonify({'success': False, 'message': 'Authentication required'}), 401

        success, result, error = TitleService(db).regenerate_one(ref)
        if success:
            return jsonify({'success': True, 'data': result}), 200
        return jsonify({'success': False, 'message': error}), error_status(error)
    finally:
        db.close()


@property_bp.route('', methods=['GET'])
def list_properties():
    db = SessionLocal()
    try:
        property_service = PropertyService(db)
        success, result, error = property_service.get_properties(request.args.to_dict())

        if success:
            result['success'] = True
            return jsonify(result), 200
        return jsonify({'success': False, 'message': error}), error_status(error)
    finally:
        db.close()


@property_bp.route('/<ref>', methods=['GET'])
def get_property(ref):
    db = SessionLocal()
    try:
        property_service = PropertyService(db)
        success, result, error = property_service.get_property(ref)

        if success:
            result['success'] = True
            return jsonify(result), 200
        return jsonify({'success': False, 'message': error}), error_status(error)
    finally:
        db.close()
