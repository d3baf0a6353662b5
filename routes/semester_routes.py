from flask import Blueprint, jsonify, request
from app import db
from models import Semester, Log
import logging
import traceback

semester_bp = Blueprint('semester', __name__, url_prefix='/semester')

def _set_lock(semester_id, locked):
    semester = db.get_or_404(Semester, semester_id)

    if semester.is_locked == locked:
        state = 'already locked' if locked else 'not locked'
        return jsonify({'success': False, 'error': f'Semester is {state}'}), 400

    data = request.get_json(silent=True) or {}
    reason = data.get('reason')
    reason = reason.strip() if isinstance(reason, str) else ''

    if not locked and not reason:
        return jsonify({'success': False, 'error': 'A reason is required to unlock a semester'}), 400

    try:
        semester.is_locked = locked
        action = "LOCK_SEMESTER" if locked else "UNLOCK_SEMESTER"
        verb = "Locked" if locked else "Unlocked"
        log = Log(action=action,
                  description=f"{verb} semester {semester.name}" + (f": {reason}" if reason else ""))
        db.session.add(log)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logging.error(f"Error changing lock of semester {semester_id}: {str(e)}\n{traceback.format_exc()}")
        return jsonify({'success': False, 'error': f'Server error: {str(e)}'}), 500

    return jsonify({
        'success': True,
        'semester': {'id': semester.id, 'name': semester.name, 'is_locked': semester.is_locked}
    })

@semester_bp.route('/<int:semester_id>/lock', methods=['POST'])
def lock_semester(semester_id):
    """Lock a semester for edits; attainment recomputation is refused afterwards"""
    return _set_lock(semester_id, True)

@semester_bp.route('/<int:semester_id>/unlock', methods=['POST'])
def unlock_semester(semester_id):
    """Unlock a semester (requires a reason)"""
    return _set_lock(semester_id, False)
