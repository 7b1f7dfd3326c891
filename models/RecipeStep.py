from models import db

class RecipeStep(db.Model):
    __tablename__ = 'recipe_steps'
    __table_args__ = (db.Index('ix_recipe_steps_recipe_order', 'recipe_id', 'order'),)

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipes.id'), nullable=False)
    # 0-based position; the whole set is rewritten when steps change
    order = db.Column(db.Integer, nullable=False)
    instruction = db.Column(db.Text, nullable=False)

    recipe = db.relationship('Recipe', back_populates='steps')

    def to_dict(self):
        return {"order": self.order, "instruction": self.instruction}
