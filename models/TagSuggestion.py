from datetime import datetime
from models import db

PENDING_OWNER = 'PENDING_OWNER'
APPROVED = 'APPROVED'
PENDING_MODERATOR = 'PENDING_MODERATOR'
REJECTED = 'REJECTED'

class TagSuggestion(db.Model):
    __tablename__ = 'tag_suggestions'
    __table_args__ = (db.UniqueConstraint('recipe_id', 'tag_name', 'suggested_by_id'),)

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipes.id'), nullable=False, index=True)
    tag_name = db.Column(db.String(50), nullable=False)
    suggested_by_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PENDING_OWNER)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    decided_at = db.Column(db.DateTime)

    recipe = db.relationship('Recipe')
    suggested_by = db.relationship('User')

    def to_dict(self):
        return {
            "id": self.id,
            "recipe_id": self.recipe_id,
            "tag_name": self.tag_name,
            "suggested_by_id": self.suggested_by_id,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
        }
