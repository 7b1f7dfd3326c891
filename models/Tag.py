from datetime import datetime
from models import db

GLOBAL = 'GLOBAL'
COMMUNITY = 'COMMUNITY'

APPROVED = 'APPROVED'
PENDING = 'PENDING'

class Tag(db.Model):
    __tablename__ = 'tags'
    __table_args__ = (db.UniqueConstraint('name', 'scope', 'community_id'),)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, index=True)
    # 'GLOBAL' or 'COMMUNITY'
    scope = db.Column(db.String(20), nullable=False, default=GLOBAL)
    # 'APPROVED' or 'PENDING'
    status = db.Column(db.String(20), nullable=False, default=APPROVED)
    # Required iff scope is COMMUNITY
    community_id = db.Column(db.Integer, db.ForeignKey('communities.id', ondelete='CASCADE'))
    # Null for system-seeded global tags
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Define relationships
    recipes = db.relationship('Recipe', secondary='recipe_tags', back_populates='tags')
    community = db.relationship('Community')

    @property
    def is_pending(self):
        return self.status == PENDING

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "scope": self.scope,
            "status": self.status,
            "community_id": self.community_id,
        }
