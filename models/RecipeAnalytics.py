from models import db

class RecipeAnalytics(db.Model):
    __tablename__ = 'recipe_analytics'

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipes.id'), unique=True, nullable=False)
    # Monotonic, best-effort counters
    shares = db.Column(db.Integer, nullable=False, default=0)
    forks = db.Column(db.Integer, nullable=False, default=0)

    recipe = db.relationship('Recipe', back_populates='analytics')
