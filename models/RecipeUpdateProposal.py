from datetime import datetime
from models import db

PENDING = 'PENDING'
ACCEPTED = 'ACCEPTED'
REJECTED = 'REJECTED'

class RecipeUpdateProposal(db.Model):
    __tablename__ = 'recipe_update_proposals'

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey('recipes.id'), nullable=False, index=True)
    proposer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)

    proposed_title = db.Column(db.String(200), nullable=False)
    # Null means "keep the recipe's current value"
    proposed_servings = db.Column(db.Integer)
    proposed_prep_time = db.Column(db.Integer)
    proposed_cook_time = db.Column(db.Integer)
    proposed_rest_time = db.Column(db.Integer)

    # 'PENDING', 'ACCEPTED', 'REJECTED'
    status = db.Column(db.String(20), nullable=False, default=PENDING)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    decided_at = db.Column(db.DateTime)

    recipe = db.relationship('Recipe', back_populates='proposals')
    proposer = db.relationship('User')
    proposed_steps = db.relationship('ProposedRecipeStep', back_populates='proposal', order_by='ProposedRecipeStep.order', cascade="all, delete-orphan")
    proposed_ingredients = db.relationship('ProposedRecipeIngredient', back_populates='proposal', order_by='ProposedRecipeIngredient.order', cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "recipe_id": self.recipe_id,
            "proposer_id": self.proposer_id,
            "proposed_title": self.proposed_title,
            "proposed_servings": self.proposed_servings,
            "proposed_prep_time": self.proposed_prep_time,
            "proposed_cook_time": self.proposed_cook_time,
            "proposed_rest_time": self.proposed_rest_time,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "proposed_steps": [{"order": s.order, "instruction": s.instruction} for s in self.proposed_steps],
            "proposed_ingredients": [pi.to_dict() for pi in self.proposed_ingredients],
        }


class ProposedRecipeStep(db.Model):
    __tablename__ = 'proposed_recipe_steps'

    id = db.Column(db.Integer, primary_key=True)
    proposal_id = db.Column(db.Integer, db.ForeignKey('recipe_update_proposals.id'), nullable=False)
    order = db.Column(db.Integer, nullable=False)
    instruction = db.Column(db.Text, nullable=False)

    proposal = db.relationship('RecipeUpdateProposal', back_populates='proposed_steps')


class ProposedRecipeIngredient(db.Model):
    __tablename__ = 'proposed_recipe_ingredients'

    id = db.Column(db.Integer, primary_key=True)
    proposal_id = db.Column(db.Integer, db.ForeignKey('recipe_update_proposals.id'), nullable=False)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredients.id'), nullable=False)
    measurement_id = db.Column(db.Integer, db.ForeignKey('measurements.id'))
    quantity = db.Column(db.Float)
    order = db.Column(db.Integer, nullable=False)

    proposal = db.relationship('RecipeUpdateProposal', back_populates='proposed_ingredients')
    ingredient = db.relationship('Ingredient')
    measurement = db.relationship('Measurement', back_populates='proposed_ingredients')

    def to_dict(self):
        return {
            "ingredient_id": self.ingredient_id,
            "name": self.ingredient.name if self.ingredient else None,
            "quantity": self.quantity,
            "unit": str(self.measurement) if self.measurement else None,
            "order": self.order,
        }
