"""
Success story routes
"""

from flask import Blueprint, request, jsonify
from kmmedia.models import db
from kmmedia.services import AuthService, StoryService
from kmmedia.utils import KMMediaException, log_error, log_info, create_response

stories_bp = Blueprint('stories', __name__)


def _page_args(default_per_page):
    page = request.args.get('page', 1, type=int)
    per_page = min(request.args.get('per_page', default_per_page, type=int), 100)
    return page, per_page


@stories_bp.route('', methods=['GET'])
def list_stories():
    """Published stories for the public site"""
    try:
        page, per_page = _page_args(10)
        result = StoryService.list_published(
            category=request.args.get('category'),
            search=request.args.get('search'),
            page=page,
            per_page=per_page
        )
        return jsonify(create_response(True, "Stories retrieved", result))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List stories error", e)
        return jsonify(create_response(False, "Failed to load stories")), 500


@stories_bp.route('/featured', methods=['GET'])
def featured_stories():
    try:
        stories = StoryService.list_featured()
        return jsonify(create_response(True, "Featured stories retrieved", [s.to_dict() for s in stories]))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("Featured stories error", e)
        return jsonify(create_response(False, "Failed to load featured stories")), 500


@stories_bp.route('/admin/all', methods=['GET'])
def list_all_stories():
    """Drafts and scheduled stories included (admin)"""
    try:
        AuthService.require_role('admin')
        page, per_page = _page_args(20)
        return jsonify(create_response(True, "Stories retrieved", StoryService.list_all(page, per_page)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List all stories error", e)
        return jsonify(create_response(False, "Failed to load stories")), 500


@stories_bp.route('/<int:story_id>', methods=['GET'])
def get_story(story_id):
    try:
        data = StoryService.read(story_id, AuthService.get_current_user())
        return jsonify(create_response(True, "Story retrieved", data))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Get story error", e)
        return jsonify(create_response(False, "Failed to load story")), 500


@stories_bp.route('', methods=['POST'])
def create_story():
    try:
        admin = AuthService.require_role('admin')
        story = StoryService.create(request.get_json(silent=True) or {}, admin)
        log_info(f"Story {story.id} created by admin {admin.id}")
        return jsonify(create_response(True, "Story created successfully", story.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Create story error", e)
        return jsonify(create_response(False, "Failed to create story")), 500


@stories_bp.route('/<int:story_id>', methods=['PUT'])
def update_story(story_id):
    try:
        AuthService.require_role('admin')
        story = StoryService.update(story_id, request.get_json(silent=True) or {})
        return jsonify(create_response(True, "Story updated successfully", story.to_dict()))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Update story error", e)
        return jsonify(create_response(False, "Failed to update story")), 500


@stories_bp.route('/<int:story_id>', methods=['DELETE'])
def delete_story(story_id):
    try:
        AuthService.require_role('admin')
        StoryService.delete(story_id)
        return jsonify(create_response(True, "Story deleted successfully"))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Delete story error", e)
        return jsonify(create_response(False, "Failed to delete story")), 500


@stories_bp.route('/<int:story_id>/comments', methods=['GET'])
def list_comments(story_id):
    try:
        page, per_page = _page_args(10)
        return jsonify(create_response(True, "Comments retrieved",
                                       StoryService.list_comments(story_id, page, per_page)))
    except KMMediaException as e:
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        log_error("List story comments error", e)
        return jsonify(create_response(False, "Failed to load comments")), 500


@stories_bp.route('/<int:story_id>/comments', methods=['POST'])
def add_comment(story_id):
    try:
        user = AuthService.require_auth()
        data = request.get_json(silent=True) or {}
        comment = StoryService.add_comment(story_id, user, data.get('content'))
        return jsonify(create_response(True, "Comment added", comment.to_dict())), 201
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Add story comment error", e)
        return jsonify(create_response(False, "Failed to add comment")), 500


@stories_bp.route('/<int:story_id>/like', methods=['POST'])
def toggle_like(story_id):
    try:
        user = AuthService.require_auth()
        result = StoryService.toggle_like(story_id, user)
        return jsonify(create_response(True, "Story liked" if result['liked'] else "Like removed", result))
    except KMMediaException as e:
        db.session.rollback()
        return jsonify(create_response(False, str(e))), e.status_code
    except Exception as e:
        db.session.rollback()
        log_error("Toggle story like error", e)
        return jsonify(create_response(False, "Failed to update like")), 500
