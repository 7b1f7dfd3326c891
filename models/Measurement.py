from models import db

class Measurement(db.Model):
    """A unit an ingredient line can be measured in, stored in its short form ('tbsp', 'g')."""
    __tablename__ = 'measurements'
    id = db.Column(db.Integer, primary_key=True)
    # Normalized through UNIT_MAPPINGS before insert, so 'Grams' and 'g' share a row
    measurement_name = db.Column(db.String(50), unique=True, nullable=False)

    recipe_ingredients = db.relationship('RecipeIngredient', back_populates='measurement')
    proposed_ingredients = db.relationship('ProposedRecipeIngredient', back_populates='measurement')

    def __str__(self):
        return self.measurement_name
