import pytest

from conftest import ingredient, recipe_input
from models import Recipe, RecipeAnalytics, Tag
from models.Community import MODERATOR
from models.Recipe import RecipeKind
from models.Tag import APPROVED, COMMUNITY
from services.errors import Conflict, InvalidInput, LimitExceeded, NotFound, PermissionDenied
from services.recipes import create_community_recipe, create_recipe
from services.share import (
    get_recipe_family_communities,
    publish_personal_recipe,
    share_recipe,
    update_ancestor_analytics,
)
from services.validation import MAX_COMMUNITY_TAGS


@pytest.fixture
def setup(session, make_user, make_community):
    owner, member = make_user(), make_user()
    a = make_community(name='Source Kitchen', members=[owner, member])
    b = make_community(name='Target Kitchen', members=[owner, member])
    data = recipe_input(tags=['weeknight'], ingredients=[ingredient('Rice', 300, 'g'), ingredient('Peas')])
    personal, recipe, _ = create_community_recipe(session, owner.id, a.id, data)
    return {"owner": owner, "member": member, "A": a, "B": b, "personal": personal, "recipe": recipe}


def test_fork_copies_recipe_into_target(session, setup, events):
    recipe, b = setup["recipe"], setup["B"]

    fork, pending = share_recipe(session, setup["owner"].id, recipe.id, b.id)

    assert fork.kind == RecipeKind.FORK
    assert (fork.origin_recipe_id, fork.shared_from_community_id, fork.community_id) == (recipe.id, setup["A"].id, b.id)
    assert [s.instruction for s in fork.steps] == [s.instruction for s in recipe.steps]
    assert [(ri.ingredient_id, ri.quantity, ri.order) for ri in fork.ingredients] == \
        [(ri.ingredient_id, ri.quantity, ri.order) for ri in recipe.ingredients]

    fork_tag = fork.tags[0]
    assert (fork_tag.name, fork_tag.community_id, fork_tag.status) == ('weeknight', b.id, 'PENDING')
    assert pending == [fork_tag.id]

    shared = [e for e in events if e.kind == 'RECIPE_SHARED']
    assert [(e.community_id, e.recipe_id) for e in shared] == [(setup["A"].id, recipe.id), (b.id, fork.id)]
    assert shared[0].metadata["targetCommunityName"] == 'Target Kitchen'


def test_fork_reuses_approved_target_tag(session, setup):
    approved = Tag(name='weeknight', scope=COMMUNITY, status=APPROVED, community_id=setup["B"].id)
    session.add(approved)
    session.commit()

    fork, pending = share_recipe(session, setup["owner"].id, setup["recipe"].id, setup["B"].id)

    assert [t.id for t in fork.tags] == [approved.id]
    assert pending == []


def test_forking_twice_into_same_community_conflicts(session, setup):
    share_recipe(session, setup["owner"].id, setup["recipe"].id, setup["B"].id)
    count = session.query(Recipe).count()

    with pytest.raises(Conflict) as exc:
        share_recipe(session, setup["owner"].id, setup["recipe"].id, setup["B"].id)

    assert exc.value.code == 'SHARE_006'
    assert session.query(Recipe).count() == count


@pytest.mark.parametrize(
    "target,error,code",
    (
        (None, InvalidInput, 'SHARE_001'),
        ('A', InvalidInput, 'SHARE_003'),
        (9999, NotFound, 'COMMUNITY_002'),
    ),
)
def test_share_target_checks(session, setup, target, error, code):
    target_id = setup["A"].id if target == 'A' else target
    with pytest.raises(error) as exc:
        share_recipe(session, setup["owner"].id, setup["recipe"].id, target_id)
    assert exc.value.code == code


def test_personal_recipes_cannot_be_forked(session, setup):
    with pytest.raises(InvalidInput) as exc:
        share_recipe(session, setup["owner"].id, setup["personal"].id, setup["B"].id)
    assert exc.value.code == 'SHARE_002'


def test_sharer_must_belong_to_target(session, setup, make_user, join):
    outsider = make_user()
    join(outsider, setup["A"])
    with pytest.raises(PermissionDenied) as exc:
        share_recipe(session, outsider.id, setup["recipe"].id, setup["B"].id)
    assert exc.value.code == 'SHARE_004'


def test_non_creator_needs_moderator_role(session, setup, make_user, join):
    with pytest.raises(PermissionDenied) as exc:
        share_recipe(session, setup["member"].id, setup["recipe"].id, setup["B"].id)
    assert exc.value.code == 'SHARE_005'

    moderator = make_user()
    join(moderator, setup["A"])
    join(moderator, setup["B"], role=MODERATOR)
    fork, _ = share_recipe(session, moderator.id, setup["recipe"].id, setup["B"].id)
    assert fork.creator_id == moderator.id


def test_analytics_count_every_ancestor(session, setup, make_community):
    owner, recipe = setup["owner"], setup["recipe"]
    c = make_community(members=[owner])

    fork, _ = share_recipe(session, owner.id, recipe.id, setup["B"].id)
    share_recipe(session, owner.id, fork.id, c.id)

    def counters(recipe_id):
        analytics = session.query(RecipeAnalytics).filter_by(recipe_id=recipe_id).one()
        return analytics.shares, analytics.forks

    assert counters(setup["personal"].id) == (2, 2)
    assert counters(recipe.id) == (2, 2)
    assert counters(fork.id) == (1, 1)


def test_analytics_walk_stops_at_missing_parent(session, setup):
    recipe = setup["recipe"]
    recipe.origin_recipe_id = 424242
    session.commit()

    update_ancestor_analytics(session, recipe.id)
    session.commit()

    assert session.query(RecipeAnalytics).count() == 1


def test_publish_creates_synchronized_copies(session, setup, make_community, events):
    owner = setup["owner"]
    personal = create_recipe(session, owner.id, recipe_input(title='Dal', tags=['lentils']))
    c = make_community(members=[owner])

    summaries = publish_personal_recipe(session, owner.id, personal.id, [setup["A"].id, c.id, c.id])

    assert [s["community_id"] for s in summaries] == [setup["A"].id, c.id]
    copies = session.query(Recipe).filter_by(origin_recipe_id=personal.id).all()
    assert all(copy.kind == RecipeKind.COMMUNITY_COPY for copy in copies)
    assert all([t.name for t in copy.tags] == ['lentils'] for copy in copies)
    assert [e.kind for e in events if e.recipe_id in {copy.id for copy in copies}] == ['RECIPE_CREATED'] * 2

    # Already-published communities are skipped
    assert publish_personal_recipe(session, owner.id, personal.id, [c.id]) == []


@pytest.mark.parametrize(
    "case,error,code",
    (
        ('no-communities', InvalidInput, 'PUBLISH_001'),
        ('community-recipe', InvalidInput, 'PUBLISH_002'),
        ('not-owner', PermissionDenied, 'RECIPE_002'),
        ('not-member', PermissionDenied, 'PUBLISH_003'),
    ),
)
def test_publish_checks(session, setup, make_community, case, error, code):
    owner, member = setup["owner"], setup["member"]
    personal = setup["personal"]
    outside = make_community()
    actor, recipe_id, community_ids = owner.id, personal.id, [setup["B"].id]
    if case == 'no-communities':
        community_ids = []
    elif case == 'community-recipe':
        recipe_id = setup["recipe"].id
    elif case == 'not-owner':
        actor = member.id
    elif case == 'not-member':
        community_ids = [outside.id]

    with pytest.raises(error) as exc:
        publish_personal_recipe(session, actor, recipe_id, community_ids)
    assert exc.value.code == code


def test_family_communities_are_distinct(session, setup, make_community):
    owner, recipe = setup["owner"], setup["recipe"]
    c = make_community(members=[owner])
    fork, _ = share_recipe(session, owner.id, recipe.id, setup["B"].id)
    # Second recipe of the same family living in B
    share_recipe(session, owner.id, fork.id, c.id)
    publish_personal_recipe(session, owner.id, setup["personal"].id, [setup["B"].id])

    communities = get_recipe_family_communities(session, fork.id)

    ids = [community.id for community in communities]
    assert sorted(ids) == sorted({setup["A"].id, setup["B"].id, c.id})
    assert len(ids) == len(set(ids))


def test_family_communities_of_missing_or_deleted_recipe(session, setup):
    assert get_recipe_family_communities(session, 31337) is None

    recipe = setup["recipe"]
    recipe.deleted_at = recipe.created_at
    session.commit()
    assert get_recipe_family_communities(session, recipe.id) is None


def test_fork_respects_the_target_community_tag_cap(session, setup):
    target = setup["B"]
    for i in range(MAX_COMMUNITY_TAGS):
        session.add(Tag(name=f'seeded-{i}', scope=COMMUNITY, status=APPROVED, community_id=target.id))
    session.commit()
    recipes_before = session.query(Recipe).count()

    with pytest.raises(LimitExceeded) as exc:
        share_recipe(session, setup["owner"].id, setup["recipe"].id, target.id)

    assert exc.value.code == 'TAG_003'
    assert session.query(Recipe).count() == recipes_before
    assert session.query(Recipe).filter_by(community_id=target.id).count() == 0
    assert session.query(Tag).filter_by(community_id=target.id).count() == MAX_COMMUNITY_TAGS
