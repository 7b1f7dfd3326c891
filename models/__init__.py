from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# --- Association Tables ---
from .RecipeTag import recipe_tags

# --- Import Models ---
from .User import User
from .Community import Community, UserCommunity
from .Recipe import Recipe, RecipeKind
from .RecipeStep import RecipeStep
from .Ingredient import Ingredient
from .Measurement import Measurement
from .RecipeIngredient import RecipeIngredient
from .Tag import Tag
from .RecipeAnalytics import RecipeAnalytics
from .RecipeUpdateProposal import RecipeUpdateProposal, ProposedRecipeStep, ProposedRecipeIngredient
from .TagSuggestion import TagSuggestion
