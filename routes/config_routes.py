from flask import Blueprint, jsonify, request
from app import db
from models import Log
import logging
import traceback
from attainment.config_resolver import (
    ScoringPolicy, get_active_scoring_policy, publish_scoring_config, scoring_config_history
)
from attainment.errors import ConfigurationAbsentError, ConfigValidationError

config_bp = Blueprint('config', __name__, url_prefix='/config')

@config_bp.route('/scoring', methods=['GET'])
def get_scoring_config():
    """Return the active scoring configuration"""
    try:
        policy = get_active_scoring_policy()
    except ConfigurationAbsentError as e:
        return jsonify({'success': False, 'error': str(e)}), e.http_status
    return jsonify({'success': True, 'config': policy.to_dict()})

@config_bp.route('/scoring', methods=['POST'])
def update_scoring_config():
    """Publish a new scoring configuration version (fields not given are carried over)"""
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({'success': False, 'message': 'No data provided'}), 400

    changed_by = data.pop('changed_by', None) or request.headers.get('X-User')

    try:
        config = publish_scoring_config(data, changed_by=changed_by)

        # Log action
        log = Log(action="UPDATE_SCORING_CONFIG",
                  description=f"Published scoring config v{config.version}"
                              + (f" by {changed_by}" if changed_by else ""))
        db.session.add(log)
        db.session.commit()
    except ConfigValidationError as e:
        db.session.rollback()
        logging.warning(f"Rejected scoring config update: {e.errors}")
        return jsonify({'success': False, 'message': 'Invalid scoring configuration', 'errors': e.errors}), 400
    except Exception as e:
        db.session.rollback()
        logging.error(f"Error updating scoring config: {str(e)}\n{traceback.format_exc()}")
        return jsonify({'success': False, 'message': f'Server error: {str(e)}'}), 500

    return jsonify({'success': True, 'config': ScoringPolicy.from_model(config).to_dict()})

@config_bp.route('/scoring/history', methods=['GET'])
def get_scoring_config_history():
    """List previous scoring configuration versions, newest first"""
    limit = request.args.get('limit', 50, type=int)
    limit = max(1, min(limit, 200))

    history = []
    for config in scoring_config_history(limit):
        entry = ScoringPolicy.from_model(config).to_dict()
        entry['is_active'] = config.is_active
        entry['changed_by'] = config.changed_by
        entry['created_at'] = config.created_at.isoformat() if config.created_at else None
        history.append(entry)

    return jsonify({'success': True, 'history': history})
