from datetime import datetime
from models import db

MEMBER = 'MEMBER'
MODERATOR = 'MODERATOR'

class Community(db.Model):
    __tablename__ = 'communities'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime)

    memberships = db.relationship('UserCommunity', back_populates='community')

    def to_dict(self):
        return {"id": self.id, "name": self.name}


class UserCommunity(db.Model):
    __tablename__ = 'user_communities'
    __table_args__ = (db.UniqueConstraint('user_id', 'community_id'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    community_id = db.Column(db.Integer, db.ForeignKey('communities.id'), nullable=False)
    # 'MEMBER' or 'MODERATOR'
    role = db.Column(db.String(20), nullable=False, default=MEMBER)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)
    deleted_at = db.Column(db.DateTime)

    user = db.relationship('User', back_populates='memberships')
    community = db.relationship('Community', back_populates='memberships')
