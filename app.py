import logging

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager, get_jwt_identity, jwt_required
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from services.communities import leave_community
from services.errors import DomainError, InvalidInput
from services.inputs import ProposalInput, RecipeInput, RecipeUpdate
from services.proposals import accept_proposal, create_proposal, get_proposals, reject_proposal
from services.recipes import (
    add_recipe_tag,
    create_community_recipe,
    create_recipe,
    delete_recipe,
    get_recipe_for_user,
    get_recipe_variants,
    update_recipe,
)
from services.share import get_recipe_family_communities, publish_personal_recipe, share_recipe
from services.tag_suggestions import (
    accept_tag_suggestion,
    create_tag_suggestion,
    get_tag_suggestions,
    reject_tag_suggestion,
)
from services.tags import approve_community_tag, reject_community_tag

logger = logging.getLogger(__name__)

migrate = Migrate()
jwt = JWTManager()


def current_user_id():
    return int(get_jwt_identity())


def get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput('REQUEST_001', 'No data received')
    return data


def create_app(config=None, config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    if config:
        app.config.from_mapping(config)

    logging.basicConfig(level=app.config.get('LOG_LEVEL', 'INFO'))
    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    CORS(app,
         resources={r"/api/*": {
             "origins": app.config['CORS_ORIGINS'],
             "methods": ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
             "allow_headers": ["Content-Type", "Authorization"]
         }},
         supports_credentials=True
    )

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    register_error_handlers(app)
    register_routes(app)
    return app


def register_error_handlers(app):
    @app.errorhandler(DomainError)
    def handle_domain_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "An internal error occurred"}), 500


def register_routes(app):

    @app.route("/ping")
    def ping():
        return "pong", 200

    ## RECIPE ROUTES ##

    @app.route('/api/recipes', methods=['POST'])
    @jwt_required()
    def create_recipe_route():
        data = RecipeInput.from_dict(get_json_body())
        recipe = create_recipe(db.session, current_user_id(), data)
        return jsonify(recipe.to_dict()), 201

    @app.route('/api/recipes/<int:recipe_id>', methods=['GET'])
    @jwt_required()
    def get_recipe_route(recipe_id):
        recipe = get_recipe_for_user(db.session, recipe_id, current_user_id())
        return jsonify(recipe.to_dict())

    @app.route('/api/recipes/<int:recipe_id>', methods=['PUT', 'PATCH'])
    @jwt_required()
    def update_recipe_route(recipe_id):
        changes = RecipeUpdate.from_dict(get_json_body())
        recipe = update_recipe(db.session, recipe_id, current_user_id(), changes)
        return jsonify(recipe.to_dict())

    @app.route('/api/recipes/<int:recipe_id>', methods=['DELETE'])
    @jwt_required()
    def delete_recipe_route(recipe_id):
        delete_recipe(db.session, recipe_id, current_user_id())
        return jsonify({"message": f"Recipe {recipe_id} deleted successfully"}), 200

    @app.route('/api/recipes/<int:recipe_id>/tags', methods=['POST'])
    @jwt_required()
    def add_recipe_tag_route(recipe_id):
        data = get_json_body()
        recipe = add_recipe_tag(db.session, recipe_id, current_user_id(), data.get('name'))
        return jsonify(recipe.to_dict()), 201

    @app.route('/api/recipes/<int:recipe_id>/variants', methods=['GET'])
    @jwt_required()
    def get_variants_route(recipe_id):
        variants = get_recipe_variants(db.session, recipe_id, current_user_id())
        return jsonify({"data": [v.to_dict() for v in variants]})

    @app.route('/api/recipes/<int:recipe_id>/communities', methods=['GET'])
    @jwt_required()
    def get_family_communities_route(recipe_id):
        get_recipe_for_user(db.session, recipe_id, current_user_id())
        communities = get_recipe_family_communities(db.session, recipe_id)
        return jsonify({"data": [c.to_dict() for c in communities or []]})

    @app.route('/api/communities/<int:community_id>/recipes', methods=['POST'])
    @jwt_required()
    def create_community_recipe_route(community_id):
        data = RecipeInput.from_dict(get_json_body())
        personal, copy, pending_tag_ids = create_community_recipe(db.session, current_user_id(), community_id, data)
        payload = copy.to_dict()
        payload["personal_recipe_id"] = personal.id
        payload["pending_tag_ids"] = pending_tag_ids
        return jsonify(payload), 201

    ## SHARE ROUTES ##

    @app.route('/api/recipes/<int:recipe_id>/share', methods=['POST'])
    @jwt_required()
    def share_recipe_route(recipe_id):
        data = get_json_body()
        fork, pending_tag_ids = share_recipe(db.session, current_user_id(), recipe_id, data.get('target_community_id'))
        payload = fork.to_dict()
        payload["pending_tag_ids"] = pending_tag_ids
        return jsonify(payload), 201

    @app.route('/api/recipes/<int:recipe_id>/publish', methods=['POST'])
    @jwt_required()
    def publish_recipe_route(recipe_id):
        data = get_json_body()
        summaries = publish_personal_recipe(db.session, current_user_id(), recipe_id, data.get('community_ids') or [])
        return jsonify({"data": summaries}), 201

    ## PROPOSAL ROUTES ##

    @app.route('/api/recipes/<int:recipe_id>/proposals', methods=['POST'])
    @jwt_required()
    def create_proposal_route(recipe_id):
        data = ProposalInput.from_dict(get_json_body())
        proposal = create_proposal(db.session, current_user_id(), recipe_id, data)
        return jsonify(proposal.to_dict()), 201

    @app.route('/api/recipes/<int:recipe_id>/proposals', methods=['GET'])
    @jwt_required()
    def get_proposals_route(recipe_id):
        proposals = get_proposals(db.session, recipe_id, current_user_id(), request.args.get('status'))
        return jsonify({"data": [p.to_dict() for p in proposals]})

    @app.route('/api/proposals/<int:proposal_id>/accept', methods=['POST'])
    @jwt_required()
    def accept_proposal_route(proposal_id):
        proposal = accept_proposal(db.session, proposal_id, current_user_id())
        return jsonify(proposal.to_dict())

    @app.route('/api/proposals/<int:proposal_id>/reject', methods=['POST'])
    @jwt_required()
    def reject_proposal_route(proposal_id):
        proposal, variant = reject_proposal(db.session, proposal_id, current_user_id())
        return jsonify({"proposal": proposal.to_dict(), "variant": variant.to_dict()})

    ## TAG SUGGESTION ROUTES ##

    @app.route('/api/recipes/<int:recipe_id>/tag-suggestions', methods=['POST'])
    @jwt_required()
    def create_tag_suggestion_route(recipe_id):
        data = get_json_body()
        suggestion = create_tag_suggestion(db.session, recipe_id, data.get('tag_name'), current_user_id())
        return jsonify(suggestion.to_dict()), 201

    @app.route('/api/recipes/<int:recipe_id>/tag-suggestions', methods=['GET'])
    @jwt_required()
    def get_tag_suggestions_route(recipe_id):
        suggestions = get_tag_suggestions(db.session, recipe_id, current_user_id(), request.args.get('status'))
        return jsonify({"data": [s.to_dict() for s in suggestions]})

    @app.route('/api/tag-suggestions/<int:suggestion_id>/accept', methods=['POST'])
    @jwt_required()
    def accept_tag_suggestion_route(suggestion_id):
        suggestion = accept_tag_suggestion(db.session, suggestion_id, current_user_id())
        return jsonify(suggestion.to_dict())

    @app.route('/api/tag-suggestions/<int:suggestion_id>/reject', methods=['POST'])
    @jwt_required()
    def reject_tag_suggestion_route(suggestion_id):
        suggestion = reject_tag_suggestion(db.session, suggestion_id, current_user_id())
        return jsonify(suggestion.to_dict())

    ## COMMUNITY ROUTES ##

    @app.route('/api/communities/<int:community_id>/tags/<int:tag_id>/approve', methods=['POST'])
    @jwt_required()
    def approve_tag_route(community_id, tag_id):
        tag = approve_community_tag(db.session, tag_id, current_user_id(), community_id)
        return jsonify(tag.to_dict())

    @app.route('/api/communities/<int:community_id>/tags/<int:tag_id>/reject', methods=['POST'])
    @jwt_required()
    def reject_tag_route(community_id, tag_id):
        reject_community_tag(db.session, tag_id, current_user_id(), community_id)
        return jsonify({"message": "Tag rejected and removed"})

    @app.route('/api/communities/<int:community_id>/members/me', methods=['DELETE'])
    @jwt_required()
    def leave_community_route(community_id):
        result = leave_community(db.session, current_user_id(), community_id)
        return jsonify(result)


app = create_app()
