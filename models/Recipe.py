import enum
from datetime import datetime
from models import db
from .RecipeStep import RecipeStep


class RecipeKind(enum.Enum):
    PERSONAL = 'personal'
    COMMUNITY_COPY = 'community_copy'
    FORK = 'fork'
    VARIANT = 'variant'


def classify_recipe(community_id, shared_from_community_id, is_variant):
    """Derive where a recipe sits in its family from its three link fields.

    The kind is never stored: a fork is anything with a source community,
    a variant anything flagged as one, otherwise the owning community decides
    between a personal recipe and a community-linked copy.
    """
    if is_variant:
        return RecipeKind.VARIANT
    if shared_from_community_id is not None:
        return RecipeKind.FORK
    if community_id is None:
        return RecipeKind.PERSONAL
    return RecipeKind.COMMUNITY_COPY


class Recipe(db.Model):
    __tablename__ = 'recipes'
    id = db.Column(db.Integer, primary_key=True)
    # Nullable so a recipe can outlive its creator (orphaned recipes)
    creator_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    community_id = db.Column(db.Integer, db.ForeignKey('communities.id'), nullable=True, index=True)

    # Link to the recipe this one was copied, forked or branched from
    origin_recipe_id = db.Column(db.Integer, db.ForeignKey('recipes.id'), nullable=True, index=True)
    shared_from_community_id = db.Column(db.Integer, db.ForeignKey('communities.id'), nullable=True)
    is_variant = db.Column(db.Boolean, nullable=False, default=False)

    title = db.Column(db.String(200), nullable=False)
    servings = db.Column(db.Integer, nullable=False, default=4)
    prep_time = db.Column(db.Integer)
    cook_time = db.Column(db.Integer)
    rest_time = db.Column(db.Integer)
    image_url = db.Column(db.String(2048))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = db.Column(db.DateTime)

    # Relationships
    steps = db.relationship('RecipeStep', back_populates='recipe', order_by='RecipeStep.order', cascade="all, delete-orphan")
    ingredients = db.relationship('RecipeIngredient', back_populates='recipe', order_by='RecipeIngredient.order', cascade="all, delete-orphan")
    tags = db.relationship('Tag', secondary='recipe_tags', back_populates='recipes')
    creator = db.relationship('User', back_populates='recipes')
    community = db.relationship('Community', foreign_keys=[community_id])
    shared_from_community = db.relationship('Community', foreign_keys=[shared_from_community_id])
    analytics = db.relationship('RecipeAnalytics', back_populates='recipe', uselist=False, cascade="all, delete-orphan")
    proposals = db.relationship('RecipeUpdateProposal', back_populates='recipe', cascade="all, delete-orphan")

    # recipe.origin_recipe is the parent, recipe.derived_recipes the direct children
    origin_recipe = db.relationship('Recipe', remote_side=[id], backref='derived_recipes')

    @property
    def kind(self):
        return classify_recipe(self.community_id, self.shared_from_community_id, self.is_variant)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "servings": self.servings,
            "prep_time": self.prep_time,
            "cook_time": self.cook_time,
            "rest_time": self.rest_time,
            "image_url": self.image_url,
            "creator_id": self.creator_id,
            "community_id": self.community_id,
            "origin_recipe_id": self.origin_recipe_id,
            "shared_from_community_id": self.shared_from_community_id,
            "is_variant": self.is_variant,
            "kind": self.kind.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "steps": [step.to_dict() for step in self.steps],
            "ingredients": [ri.to_dict() for ri in self.ingredients],
            "tags": [{"id": tag.id, "name": tag.name, "scope": tag.scope, "status": tag.status} for tag in self.tags],
        }
