import logging
from datetime import datetime

from models import ProposedRecipeIngredient, ProposedRecipeStep, Recipe, RecipeUpdateProposal
from models.RecipeUpdateProposal import ACCEPTED, PENDING, REJECTED
from services import events
from services.errors import AlreadyDecided, Conflict, InvalidInput, NotFound, PermissionDenied
from services.ingredients import IngredientLine, resolve_ingredients, write_ingredient_lines
from services.recipe_graph import require_membership, require_recipe
from services.sync import apply_fields, propagate, write_steps
from services.transaction import atomic
from services.validation import validate_proposal_input

logger = logging.getLogger(__name__)

PROPOSAL_STATUSES = (PENDING, ACCEPTED, REJECTED)


def create_proposal(session, proposer_id, recipe_id, data):
    """Propose an edit of someone else's community recipe.

    The proposed steps and ingredients are stored as a shadow copy on the
    proposal; the recipe itself is untouched until the creator accepts.
    """
    validate_proposal_input(data)

    recipe = require_recipe(session, recipe_id)
    if recipe.community_id is None:
        raise InvalidInput('PROPOSAL_001', 'Cannot propose on personal recipe')
    require_membership(session, proposer_id, recipe.community_id)
    if recipe.creator_id == proposer_id:
        raise PermissionDenied('PROPOSAL_001', 'Cannot propose on your own recipe')

    with atomic(session) as uow:
        proposal = RecipeUpdateProposal(
            recipe_id=recipe.id,
            proposer_id=proposer_id,
            proposed_title=data.title.strip(),
            proposed_servings=data.servings,
            proposed_prep_time=data.prep_time,
            proposed_cook_time=data.cook_time,
            proposed_rest_time=data.rest_time,
            status=PENDING,
        )
        session.add(proposal)
        session.flush()

        for order, instruction in enumerate(data.steps):
            session.add(ProposedRecipeStep(proposal_id=proposal.id, order=order, instruction=instruction.strip()))
        for line in resolve_ingredients(session, data.ingredients, proposer_id):
            session.add(ProposedRecipeIngredient(
                proposal_id=proposal.id,
                ingredient_id=line.ingredient_id,
                measurement_id=line.measurement_id,
                quantity=line.quantity,
                order=line.order,
            ))

        uow.stage(events.VARIANT_PROPOSED, proposer_id, recipe.community_id, recipe.id,
                  target_user_ids=[recipe.creator_id] if recipe.creator_id else None,
                  proposalId=proposal.id)

    logger.info("Proposal %s created on recipe %s by user %s", proposal.id, recipe.id, proposer_id)
    return proposal


def get_proposals(session, recipe_id, user_id, status=None):
    recipe = require_recipe(session, recipe_id)
    if recipe.community_id is None:
        raise InvalidInput('PROPOSAL_001', 'Cannot list proposals on personal recipe')
    require_membership(session, user_id, recipe.community_id)

    query = session.query(RecipeUpdateProposal).filter_by(recipe_id=recipe.id)
    if status and status.upper() in PROPOSAL_STATUSES:
        query = query.filter_by(status=status.upper())
    return query.order_by(RecipeUpdateProposal.created_at.desc(), RecipeUpdateProposal.id.desc()).all()


def _load_for_decision(session, proposal_id, user_id, action):
    proposal = session.get(RecipeUpdateProposal, proposal_id)
    if proposal is None:
        raise NotFound('PROPOSAL_004', 'Proposal not found')

    recipe = proposal.recipe
    if recipe is None or recipe.deleted_at is not None:
        raise NotFound('RECIPE_001', 'Recipe not found')
    if recipe.community_id is None:
        raise InvalidInput('PROPOSAL_001', f'Cannot {action} proposal on personal recipe')
    if recipe.creator_id != user_id:
        raise PermissionDenied('RECIPE_002', f'Only the recipe creator can {action} proposals')
    if proposal.status != PENDING:
        raise AlreadyDecided('PROPOSAL_002', 'Proposal already decided')
    return proposal, recipe


def _proposed_lines(proposal):
    return [
        IngredientLine(pi.ingredient_id, pi.quantity, pi.measurement_id, pi.order)
        for pi in proposal.proposed_ingredients
    ]


def _proposed_scalars(proposal):
    scalars = {"title": proposal.proposed_title}
    for field in ('servings', 'prep_time', 'cook_time', 'rest_time'):
        value = getattr(proposal, f'proposed_{field}')
        if value is not None:
            scalars[field] = value
    return scalars


def accept_proposal(session, proposal_id, user_id):
    """Apply a proposal to its recipe and cascade it through the synchronized family."""
    proposal, recipe = _load_for_decision(session, proposal_id, user_id, 'accept')

    if recipe.updated_at and proposal.created_at and recipe.updated_at > proposal.created_at:
        raise Conflict('PROPOSAL_003', 'Recipe has been modified since proposal was created')

    with atomic(session) as uow:
        scalars = _proposed_scalars(proposal)
        steps = [step.instruction for step in proposal.proposed_steps]
        lines = _proposed_lines(proposal)

        apply_fields(session, recipe, scalars, steps, lines)
        linked = propagate(session, recipe, scalars, steps, lines)

        proposal.status = ACCEPTED
        proposal.decided_at = datetime.utcnow()

        for linked_recipe in linked:
            if linked_recipe.community_id is not None:
                uow.stage(events.RECIPE_UPDATED, user_id, linked_recipe.community_id, linked_recipe.id,
                          propagatedFromProposalId=proposal.id)
        uow.stage(events.PROPOSAL_ACCEPTED, user_id, recipe.community_id, recipe.id,
                  target_user_ids=[proposal.proposer_id], proposalId=proposal.id)

    logger.info("Proposal %s accepted; recipe %s and %s linked recipes updated", proposal.id, recipe.id, len(linked))
    return proposal


def create_variant_from_proposal(session, proposal, recipe):
    """Branch the proposer's idea off `recipe` as an isolated variant."""
    variant = Recipe(
        title=proposal.proposed_title or recipe.title,
        servings=proposal.proposed_servings if proposal.proposed_servings is not None else recipe.servings,
        prep_time=proposal.proposed_prep_time if proposal.proposed_prep_time is not None else recipe.prep_time,
        cook_time=proposal.proposed_cook_time if proposal.proposed_cook_time is not None else recipe.cook_time,
        rest_time=proposal.proposed_rest_time if proposal.proposed_rest_time is not None else recipe.rest_time,
        image_url=recipe.image_url,
        is_variant=True,
        creator_id=proposal.proposer_id,
        community_id=recipe.community_id,
        origin_recipe_id=recipe.id,
    )
    session.add(variant)
    session.flush()

    steps = [step.instruction for step in proposal.proposed_steps] or [step.instruction for step in recipe.steps]
    write_steps(session, variant, steps)
    write_ingredient_lines(session, variant, _proposed_lines(proposal))
    return variant


def reject_proposal(session, proposal_id, user_id):
    """Reject a proposal, keeping it alive as a variant owned by the proposer.

    Returns ``(proposal, variant)``. The target recipe is never modified.
    """
    proposal, recipe = _load_for_decision(session, proposal_id, user_id, 'reject')

    with atomic(session) as uow:
        variant = create_variant_from_proposal(session, proposal, recipe)
        proposal.status = REJECTED
        proposal.decided_at = datetime.utcnow()

        uow.stage(events.PROPOSAL_REJECTED, user_id, recipe.community_id, recipe.id,
                  target_user_ids=[proposal.proposer_id], proposalId=proposal.id)
        uow.stage(events.VARIANT_CREATED, proposal.proposer_id, recipe.community_id, variant.id,
                  proposalId=proposal.id, originRecipeId=recipe.id)

    logger.info("Proposal %s rejected; variant %s created for user %s", proposal.id, variant.id, proposal.proposer_id)
    return proposal, variant


def handle_orphaned_recipes(uow, user_id, community_id):
    """Auto-reject pending proposals on a departing member's recipes.

    Runs inside the caller's transaction. Each rejected proposal becomes a
    variant for its proposer, as with a normal rejection.
    """
    session = uow.session
    recipes = session.query(Recipe).filter(
        Recipe.creator_id == user_id,
        Recipe.community_id == community_id,
        Recipe.deleted_at.is_(None),
    ).all()

    now = datetime.utcnow()
    rejected = 0
    for recipe in recipes:
        pending = [p for p in recipe.proposals if p.status == PENDING]
        for proposal in pending:
            variant = create_variant_from_proposal(session, proposal, recipe)
            proposal.status = REJECTED
            proposal.decided_at = now
            rejected += 1
            uow.stage(events.VARIANT_CREATED, proposal.proposer_id, community_id, variant.id,
                      proposalId=proposal.id, originRecipeId=recipe.id, reason='ORPHAN_AUTO_REJECT')

    return {
        "processed_recipes": len(recipes),
        "auto_rejected_proposals": rejected,
        "created_variants": rejected,
    }
