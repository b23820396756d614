"""
Success stories: admin publishing, public reading, comments and likes
"""

from typing import Any, Dict, List, Optional
from flask import current_app
from kmmedia.models import db, Story, StoryComment, StoryLike, User
from kmmedia.utils.exceptions import NotFoundError, ValidationError
from kmmedia.utils.helpers import utcnow
from kmmedia.utils.validators import validate_required, validate_string_length, parse_datetime

FEATURED_LIMIT = 6

# Free-text fields copied as-is
OPTIONAL_FIELDS = ('excerpt', 'featured_image', 'meta_description', 'seo_title')


def _paginated(query, page: int, per_page: int, key: str, serialize) -> Dict[str, Any]:
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    return {
        key: [serialize(item) for item in pagination.items],
        'pagination': {
            'page': pagination.page,
            'per_page': pagination.per_page,
            'total': pagination.total,
            'pages': pagination.pages
        }
    }


class StoryService:
    """Story service class"""

    @staticmethod
    def _visible_query():
        now = utcnow()
        return Story.query.filter(
            Story.is_published.is_(True),
            db.or_(Story.scheduled_for.is_(None), Story.scheduled_for <= now)
        )

    @staticmethod
    def _apply_fields(story: Story, data: Dict[str, Any], partial: bool) -> None:
        if not partial or 'title' in data:
            validate_required(data.get('title'), 'Story title')
            validate_string_length(str(data['title']), 1, 255, 'Story title')
            story.title = str(data['title']).strip()
        if not partial or 'content' in data:
            validate_required(data.get('content'), 'Content')
            validate_string_length(str(data['content']).strip(), 10, None, 'Content')
            story.content = str(data['content']).strip()
        if not partial or 'category' in data:
            validate_required(data.get('category'), 'Category')
            story.category = str(data['category']).strip()
        for field in OPTIONAL_FIELDS:
            if field in data:
                setattr(story, field, data[field] or None)
        if 'tags' in data:
            tags = data['tags']
            if isinstance(tags, (list, tuple)):
                tags = ','.join(str(tag).strip() for tag in tags)
            story.tags = tags or None
        if 'scheduled_for' in data:
            story.scheduled_for = parse_datetime(data['scheduled_for'], 'Scheduled date')
        if 'is_featured' in data:
            story.is_featured = bool(data['is_featured'])
        if 'is_published' in data:
            story.is_published = bool(data['is_published'])
            if story.is_published and story.published_at is None:
                story.published_at = utcnow()

    @staticmethod
    def create(data: Dict[str, Any], author: User) -> Story:
        """
        Create a story (admin)

        Args:
            data: title, content (10+ characters), category and optional
                excerpt, featured_image, tags, scheduled_for, is_published,
                is_featured, meta_description, seo_title
            author: Admin writing the story

        Returns:
            The new story; drafts stay hidden until published
        """
        story = Story(author_id=author.id, is_published=False, is_featured=False)
        StoryService._apply_fields(story, data, partial=False)
        db.session.add(story)
        db.session.commit()
        current_app.logger.info(f"Admin {author.id} created story {story.id}")
        return story

    @staticmethod
    def update(story_id: int, data: Dict[str, Any]) -> Story:
        story = StoryService.get_or_404(story_id)
        StoryService._apply_fields(story, data, partial=True)
        db.session.commit()
        return story

    @staticmethod
    def delete(story_id: int) -> None:
        story = StoryService.get_or_404(story_id)
        db.session.delete(story)
        db.session.commit()
        current_app.logger.info(f"Story {story_id} deleted")

    @staticmethod
    def get_or_404(story_id: int) -> Story:
        story = db.session.get(Story, story_id)
        if not story:
            raise NotFoundError("Story not found")
        return story

    @staticmethod
    def get_visible(story_id: int) -> Story:
        story = db.session.get(Story, story_id)
        if not story or not story.is_visible(utcnow()):
            raise NotFoundError("Story not found")
        return story

    @staticmethod
    def list_published(category: Optional[str] = None, search: Optional[str] = None,
                       page: int = 1, per_page: int = 10) -> Dict[str, Any]:
        """Published stories, featured first, newest first"""
        query = StoryService._visible_query()
        if category:
            query = query.filter(Story.category == category)
        if search:
            term = f"%{search.strip()}%"
            query = query.filter(db.or_(
                Story.title.ilike(term), Story.content.ilike(term), Story.excerpt.ilike(term)
            ))
        query = query.order_by(Story.is_featured.desc(), Story.published_at.desc(), Story.id.desc())
        return _paginated(query, page, per_page, 'stories', lambda story: story.to_dict())

    @staticmethod
    def list_featured() -> List[Story]:
        return (StoryService._visible_query()
                .filter(Story.is_featured.is_(True))
                .order_by(Story.published_at.desc(), Story.id.desc())
                .limit(FEATURED_LIMIT)
                .all())

    @staticmethod
    def list_all(page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        """Every story including drafts (admin)"""
        query = Story.query.order_by(Story.created_at.desc(), Story.id.desc())
        return _paginated(query, page, per_page, 'stories', lambda story: story.to_dict())

    @staticmethod
    def read(story_id: int, user: Optional[User] = None) -> Dict[str, Any]:
        """Public story view; counts the view and returns the latest comments"""
        story = StoryService.get_visible(story_id)
        story.view_count = (story.view_count or 0) + 1
        db.session.commit()

        comments = (StoryComment.query
                    .filter_by(story_id=story.id)
                    .order_by(StoryComment.created_at.desc(), StoryComment.id.desc())
                    .limit(10)
                    .all())
        liked = False
        if user is not None:
            liked = StoryLike.query.filter_by(story_id=story.id, user_id=user.id).first() is not None
        return {
            'story': story.to_dict(),
            'comments': [comment.to_dict() for comment in comments],
            'liked': liked
        }

    @staticmethod
    def list_comments(story_id: int, page: int = 1, per_page: int = 10) -> Dict[str, Any]:
        story = StoryService.get_visible(story_id)
        query = (StoryComment.query
                 .filter_by(story_id=story.id)
                 .order_by(StoryComment.created_at.desc(), StoryComment.id.desc()))
        return _paginated(query, page, per_page, 'comments', lambda comment: comment.to_dict())

    @staticmethod
    def add_comment(story_id: int, user: User, content: Any) -> StoryComment:
        story = StoryService.get_visible(story_id)
        text = str(content or '').strip()
        if not text:
            raise ValidationError("Comment cannot be empty")
        validate_string_length(text, 1, 2000, 'Comment')

        comment = StoryComment(story_id=story.id, user_id=user.id, content=text)
        db.session.add(comment)
        db.session.commit()
        return comment

    @staticmethod
    def toggle_like(story_id: int, user: User) -> Dict[str, Any]:
        """Like the story, or take the like back"""
        story = StoryService.get_visible(story_id)
        existing = StoryLike.query.filter_by(story_id=story.id, user_id=user.id).first()
        if existing:
            db.session.delete(existing)
            story.like_count = max(0, (story.like_count or 0) - 1)
            liked = False
        else:
            db.session.add(StoryLike(story_id=story.id, user_id=user.id))
            story.like_count = (story.like_count or 0) + 1
            liked = True
        db.session.commit()
        return {'liked': liked, 'like_count': story.like_count}
