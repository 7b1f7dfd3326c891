from datetime import datetime
from models import db

APPROVED = 'APPROVED'
PENDING = 'PENDING'

class Ingredient(db.Model):
    __tablename__ = 'ingredients'
    id = db.Column(db.Integer, primary_key=True)
    # Stored normalized (trimmed, lowercase), so unique is case-insensitive
    name = db.Column(db.String(100), unique=True, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=APPROVED)
    default_measurement_id = db.Column(db.Integer, db.ForeignKey('measurements.id'))
    created_by_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    #Define relationships
    recipe_ingredients = db.relationship('RecipeIngredient', back_populates='ingredient')
    default_measurement = db.relationship('Measurement')
