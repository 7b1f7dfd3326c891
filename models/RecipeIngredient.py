from models import db

class RecipeIngredient(db.Model):
    __tablename__ = 'recipe_ingredients'
    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipes.id'), nullable=False)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredients.id'), nullable=False)
    measurement_id = db.Column(db.Integer, db.ForeignKey('measurements.id'))
    quantity = db.Column(db.Float)
    order = db.Column(db.Integer, nullable=False)

    # Define relationships
    recipe = db.relationship('Recipe', back_populates='ingredients')
    ingredient = db.relationship('Ingredient', back_populates='recipe_ingredients')
    measurement = db.relationship('Measurement', back_populates='recipe_ingredients')

    def to_dict(self):
        return {
            "ingredient_id": self.ingredient_id,
            "name": self.ingredient.name if self.ingredient else None,
            "quantity": self.quantity,
            "unit": str(self.measurement) if self.measurement else None,
            "order": self.order,
        }
