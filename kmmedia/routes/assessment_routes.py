"""
Assignment and quiz routes
"""

from flask import Blueprint, request, jsonify
from kmmedia.models import db
from kmmedia.services import AuthService, AssessmentService
from kmmedia.utils import KMMediaException, log_error, create_response

assessments_bp = Blueprint('assessments', __name__)


@assessments_bp.route('/courses/<int:course_id>/assignments', methods=['GET'])
def list_assignments(course_id):
    try:
        user = AuthService.require_auth()
        assignments = AssessmentService.list_assignments(user, course_id)
        return jsonify(create_response(True, "Assignments retrieved", assignments))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List assignments error", e)
        return jsonify(create_response(False, "Failed to load assignments")), 500


@assessments_bp.route('/courses/<int:course_id>/assignments', methods=['POST'])
def create_assignment(course_id):
    try:
        user = AuthService.require_auth()
        assignment = AssessmentService.create_assignment(user, course_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Assignment created", assignment.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Create assignment error", e)
        return jsonify(create_response(False, "Failed to create assignment")), 500


@assessments_bp.route('/assignments/<int:assignment_id>', methods=['PUT'])
def update_assignment(assignment_id):
    try:
        user = AuthService.require_auth()
        assignment = AssessmentService.update_assignment(user, assignment_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Assignment updated", assignment.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update assignment error", e)
        return jsonify(create_response(False, "Failed to update assignment")), 500


@assessments_bp.route('/assignments/<int:assignment_id>', methods=['DELETE'])
def delete_assignment(assignment_id):
    try:
        user = AuthService.require_auth()
        AssessmentService.delete_assignment(user, assignment_id)
        return jsonify(create_response(True, "Assignment deleted"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Delete assignment error", e)
        return jsonify(create_response(False, "Failed to delete assignment")), 500


@assessments_bp.route('/assignments/<int:assignment_id>/submit', methods=['POST'])
def submit_assignment(assignment_id):
    """Submit text and/or a file for an assignment"""
    try:
        user = AuthService.require_auth()
        if request.files or request.form:
            data = request.form.to_dict()
        else:
            data = request.get_json(silent=True) or {}
        submission = AssessmentService.submit_assignment(user, assignment_id, data, request.files.get('file'))
        message = "Assignment submitted late" if submission.status == 'late' else "Assignment submitted"
        return jsonify(create_response(True, message, submission.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Submit assignment error", e)
        return jsonify(create_response(False, "Failed to submit assignment")), 500


@assessments_bp.route('/assignments/<int:assignment_id>/submissions', methods=['GET'])
def list_submissions(assignment_id):
    try:
        user = AuthService.require_auth()
        submissions = AssessmentService.list_submissions(user, assignment_id)
        return jsonify(create_response(True, "Submissions retrieved", [s.to_dict() for s in submissions]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List submissions error", e)
        return jsonify(create_response(False, "Failed to load submissions")), 500


@assessments_bp.route('/submissions/<int:submission_id>/grade', methods=['POST'])
def grade_submission(submission_id):
    try:
        user = AuthService.require_auth()
        data = request.get_json(silent=True) or {}
        submission = AssessmentService.grade_submission(user, submission_id, data.get('score'), data.get('feedback'))
        return jsonify(create_response(True, "Submission graded", submission.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Grade submission error", e)
        return jsonify(create_response(False, "Failed to grade submission")), 500


@assessments_bp.route('/courses/<int:course_id>/quizzes', methods=['GET'])
def list_quizzes(course_id):
    try:
        user = AuthService.require_auth()
        quizzes = AssessmentService.list_quizzes(user, course_id)
        return jsonify(create_response(True, "Quizzes retrieved", [q.to_dict() for q in quizzes]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List quizzes error", e)
        return jsonify(create_response(False, "Failed to load quizzes")), 500


@assessments_bp.route('/courses/<int:course_id>/quizzes', methods=['POST'])
def create_quiz(course_id):
    try:
        user = AuthService.require_auth()
        quiz = AssessmentService.create_quiz(user, course_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Quiz created",
                                       quiz.to_dict(include_questions=True, include_answers=True))), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Create quiz error", e)
        return jsonify(create_response(False, "Failed to create quiz")), 500


@assessments_bp.route('/quizzes/<int:quiz_id>', methods=['GET'])
def get_quiz(quiz_id):
    try:
        user = AuthService.require_auth()
        return jsonify(create_response(True, "Quiz retrieved", AssessmentService.get_quiz(user, quiz_id)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Get quiz error", e)
        return jsonify(create_response(False, "Failed to load quiz")), 500


@assessments_bp.route('/quizzes/<int:quiz_id>', methods=['PUT'])
def update_quiz(quiz_id):
    try:
        user = AuthService.require_auth()
        quiz = AssessmentService.update_quiz(user, quiz_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Quiz updated", quiz.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update quiz error", e)
        return jsonify(create_response(False, "Failed to update quiz")), 500


@assessments_bp.route('/quizzes/<int:quiz_id>', methods=['DELETE'])
def delete_quiz(quiz_id):
    try:
        user = AuthService.require_auth()
        AssessmentService.delete_quiz(user, quiz_id)
        return jsonify(create_response(True, "Quiz deleted"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Delete quiz error", e)
        return jsonify(create_response(False, "Failed to delete quiz")), 500


@assessments_bp.route('/quizzes/<int:quiz_id>/attempts', methods=['POST'])
def start_attempt(quiz_id):
    try:
        user = AuthService.require_auth()
        attempt = AssessmentService.start_attempt(user, quiz_id)
        return jsonify(create_response(True, "Quiz attempt started", attempt.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Start quiz attempt error", e)
        return jsonify(create_response(False, "Failed to start quiz")), 500


@assessments_bp.route('/quizzes/<int:quiz_id>/attempts', methods=['GET'])
def list_attempts(quiz_id):
    try:
        user = AuthService.require_auth()
        attempts = AssessmentService.list_attempts(user, quiz_id)
        return jsonify(create_response(True, "Quiz attempts retrieved", [a.to_dict() for a in attempts]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List quiz attempts error", e)
        return jsonify(create_response(False, "Failed to load attempts")), 500


@assessments_bp.route('/attempts/<int:attempt_id>/submit', methods=['POST'])
def submit_attempt(attempt_id):
    try:
        user = AuthService.require_auth()
        data = request.get_json(silent=True) or {}
        attempt = AssessmentService.submit_attempt(user, attempt_id, data.get('answers'))
        if attempt.status == 'abandoned':
            message = "Time limit exceeded. The attempt was not graded."
        else:
            message = "Quiz submitted"
        return jsonify(create_response(True, message, attempt.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Submit quiz attempt error", e)
        return jsonify(create_response(False, "Failed to submit quiz")), 500
