"""
Success stories published on the public site
"""

from datetime import datetime
from kmmedia.models.database import db


class Story(db.Model):
    """Story model"""
    __tablename__ = 'stories'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    excerpt = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(100), nullable=False, index=True)
    featured_image = db.Column(db.Text, nullable=True)
    author_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    is_published = db.Column(db.Boolean, nullable=False, default=False)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    view_count = db.Column(db.Integer, nullable=False, default=0)
    like_count = db.Column(db.Integer, nullable=False, default=0)
    scheduled_for = db.Column(db.DateTime, nullable=True)
    published_at = db.Column(db.DateTime, nullable=True)
    tags = db.Column(db.Text, nullable=True)
    meta_description = db.Column(db.Text, nullable=True)
    seo_title = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = db.relationship('User', foreign_keys=[author_id])
    comments = db.relationship('StoryComment', backref='story', lazy=True,
                               cascade='all, delete-orphan')
    likes = db.relationship('StoryLike', backref='story', lazy=True,
                            cascade='all, delete-orphan')

    def is_visible(self, now=None):
        """Published and past any scheduled date"""
        now = now or datetime.utcnow()
        return self.is_published and (self.scheduled_for is None or self.scheduled_for <= now)

    def to_dict(self):
        """Convert to dictionary"""
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'excerpt': self.excerpt,
            'category': self.category,
            'featured_image': self.featured_image,
            'author_id': self.author_id,
            'author_name': self.author.full_name if self.author else None,
            'is_published': self.is_published,
            'is_featured': self.is_featured,
            'view_count': self.view_count,
            'like_count': self.like_count,
            'comment_count': len(self.comments),
            'scheduled_for': self.scheduled_for.isoformat() if self.scheduled_for else None,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'tags': [tag.strip() for tag in (self.tags or '').split(',') if tag.strip()],
            'meta_description': self.meta_description,
            'seo_title': self.seo_title,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class StoryComment(db.Model):
    """Comment left on a story by a signed-in user"""
    __tablename__ = 'story_comments'

    id = db.Column(db.Integer, primary_key=True)
    story_id = db.Column(db.Integer, db.ForeignKey('stories.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship('User', foreign_keys=[user_id])

    def to_dict(self):
        return {
            'id': self.id,
            'story_id': self.story_id,
            'user_id': self.user_id,
            'author_name': self.user.full_name if self.user else None,
            'content': self.content,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class StoryLike(db.Model):
    __tablename__ = 'story_likes'
    __table_args__ = (db.UniqueConstraint('story_id', 'user_id', name='uq_story_like'),)

    id = db.Column(db.Integer, primary_key=True)
    story_id = db.Column(db.Integer, db.ForeignKey('stories.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
