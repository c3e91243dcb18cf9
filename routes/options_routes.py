# backend/routes/options_routes.py
"""
Reference data for the cascading dropdowns in the listing form
(type, status, province -> district -> subdistrict, features).
"""
from flask import Blueprint, jsonify

from config.database import SessionLocal
from services.lookup_service import coerce_id
from services.master_data_service import MasterDataService

options_bp = Blueprint('options', __name__, url_prefix='/options')


def _respond(result, **extra):
    success, data, error = result
    if success:
        return jsonify({'success': True, 'data': data, **extra}), 200
    status = 400 if error.startswith('Invalid') else 500
    return jsonify({'success': False, 'error': error}), status


@options_bp.route('/types', methods=['GET'])
def get_types():
    db = SessionLocal()
    try:
        return _respond(MasterDataService(db).get_types())
    finally:
        db.close()


@options_bp.route('/statuses', methods=['GET'])
def get_statuses():
    db = SessionLocal()
    try:
        return _respond(MasterDataService(db).get_statuses())
    finally:
        db.close()


@options_bp.route('/provinces', methods=['GET'])
def get_provinces():
    db = SessionLocal()
    try:
        return _respond(MasterDataService(db).get_provinces())
    finally:
        db.close()


@options_bp.route('/districts/<province_id>', methods=['GET'])
def get_districts(province_id):
    db = SessionLocal()
    try:
        return _respond(MasterDataService(db).get_districts(province_id), province_id=coerce_id(province_id))
    finally:
        db.close()


@options_bp.route('/subdistricts/<district_id>', methods=['GET'])
def get_subdistricts(district_id):
    db = SessionLocal()
    try:
        return _respond(MasterDataService(db).get_subdistricts(district_id), district_id=coerce_id(district_id))
    finally:
        db.close()


@options_bp.route('/location/<location_id>', methods=['GET'])
def get_location(location_id):
    db = SessionLocal()
    try:
        success, data, error = MasterDataService(db).get_location_hierarchy(location_id)
        if success and data is None:
            return jsonify({'success': False, 'error': 'Location not found'}), 404
        return _respond((success, data, error))
    finally:
        db.close()


@options_bp.route('/features', methods=['GET'])
def get_features():
    db = SessionLocal()
    try:
        return _respond(MasterDataService(db).get_features())
    finally:
        db.close()
