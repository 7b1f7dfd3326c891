import pytest

from conftest import recipe_input
from models import Recipe, Tag, TagSuggestion
from models.Tag import APPROVED, COMMUNITY, GLOBAL, PENDING
from services.errors import AlreadyDecided, Conflict, InvalidInput, LimitExceeded, PermissionDenied
from services.recipes import create_community_recipe, delete_recipe
from services.tag_suggestions import (
    accept_tag_suggestion,
    create_tag_suggestion,
    get_tag_suggestions,
    reject_tag_suggestion,
)
from services.tags import approve_community_tag


@pytest.fixture
def setup(session, make_user, make_community):
    owner, suggester, moderator = make_user(), make_user(), make_user()
    community = make_community(members=[owner, suggester], moderators=[moderator])
    _, recipe, _ = create_community_recipe(session, owner.id, community.id, recipe_input(title='Tofu bowl'))
    return {"owner": owner, "suggester": suggester, "moderator": moderator,
            "community": community, "recipe": recipe.id}


def test_unknown_tag_waits_for_moderator(session, setup, events):
    suggestion = create_tag_suggestion(session, setup["recipe"], ' Vegan', setup["suggester"].id)
    assert (suggestion.status, suggestion.tag_name) == ('PENDING_OWNER', 'vegan')
    assert events[-1].target_user_ids == [setup["owner"].id]

    accept_tag_suggestion(session, suggestion.id, setup["owner"].id)

    assert session.get(TagSuggestion, suggestion.id).status == 'PENDING_MODERATOR'
    tags = session.get(Recipe, setup["recipe"]).tags
    assert [(t.name, t.scope, t.status) for t in tags] == [('vegan', COMMUNITY, PENDING)]
    assert tags[0].created_by_id == setup["suggester"].id
    assert events[-1].metadata["finalStatus"] == 'PENDING_MODERATOR'


def test_moderator_approval_settles_the_suggestion(session, setup):
    suggestion = create_tag_suggestion(session, setup["recipe"], 'vegan', setup["suggester"].id)
    accept_tag_suggestion(session, suggestion.id, setup["owner"].id)
    tag = session.query(Tag).filter_by(name='vegan', scope=COMMUNITY).one()

    approve_community_tag(session, tag.id, setup["moderator"].id)

    assert session.get(TagSuggestion, suggestion.id).status == 'APPROVED'


@pytest.mark.parametrize("scope", (GLOBAL, COMMUNITY))
def test_existing_approved_tag_is_linked_directly(session, setup, scope):
    community_id = setup["community"].id if scope == COMMUNITY else None
    tag = Tag(name='vegan', scope=scope, status=APPROVED, community_id=community_id)
    session.add(tag)
    session.commit()
    suggestion = create_tag_suggestion(session, setup["recipe"], 'vegan', setup["suggester"].id)

    accept_tag_suggestion(session, suggestion.id, setup["owner"].id)

    assert session.get(TagSuggestion, suggestion.id).status == 'APPROVED'
    assert [t.id for t in session.get(Recipe, setup["recipe"]).tags] == [tag.id]
    assert session.query(Tag).filter_by(name='vegan').count() == 1


def test_reject_creates_no_tag(session, setup, events):
    suggestion = create_tag_suggestion(session, setup["recipe"], 'vegan', setup["suggester"].id)

    reject_tag_suggestion(session, suggestion.id, setup["owner"].id)

    assert session.get(TagSuggestion, suggestion.id).status == 'REJECTED'
    assert session.query(Tag).count() == 0
    assert events[-1].kind == 'TAG_SUGGESTION_REJECTED'


def test_suggestion_rules(session, setup, make_user):
    recipe_id, suggester = setup["recipe"], setup["suggester"]

    with pytest.raises(InvalidInput):
        create_tag_suggestion(session, recipe_id, 'x', suggester.id)
    with pytest.raises(InvalidInput):
        create_tag_suggestion(session, recipe_id, 'x' * 51, suggester.id)
    with pytest.raises(PermissionDenied):
        create_tag_suggestion(session, recipe_id, 'vegan', setup["owner"].id)
    with pytest.raises(PermissionDenied):
        create_tag_suggestion(session, recipe_id, 'vegan', make_user().id)

    create_tag_suggestion(session, recipe_id, 'vegan', suggester.id)
    with pytest.raises(Conflict) as exc:
        create_tag_suggestion(session, recipe_id, 'VEGAN', suggester.id)
    assert exc.value.code == 'TAG_006'


def test_no_suggestion_on_personal_recipe(session, setup):
    personal_id = session.get(Recipe, setup["recipe"]).origin_recipe_id
    with pytest.raises(InvalidInput):
        create_tag_suggestion(session, personal_id, 'vegan', setup["suggester"].id)


def test_suggestion_respects_recipe_tag_cap(session, setup):
    owner = setup["owner"]
    data = recipe_input(tags=[f'tag{i}' for i in range(10)])
    _, full, _ = create_community_recipe(session, owner.id, setup["community"].id, data)

    with pytest.raises(LimitExceeded):
        create_tag_suggestion(session, full.id, 'eleventh', setup["suggester"].id)
    with pytest.raises(Conflict) as exc:
        create_tag_suggestion(session, full.id, 'tag3', setup["suggester"].id)
    assert exc.value.code == 'TAG_002'


def test_only_owner_decides_once(session, setup):
    suggestion = create_tag_suggestion(session, setup["recipe"], 'vegan', setup["suggester"].id)

    with pytest.raises(PermissionDenied):
        accept_tag_suggestion(session, suggestion.id, setup["suggester"].id)

    reject_tag_suggestion(session, suggestion.id, setup["owner"].id)
    with pytest.raises(AlreadyDecided):
        accept_tag_suggestion(session, suggestion.id, setup["owner"].id)


@pytest.mark.parametrize("orphaned_by", ("deleted", "no-creator"))
def test_orphaned_suggestion_is_auto_rejected(session, setup, orphaned_by):
    suggestion = create_tag_suggestion(session, setup["recipe"], 'vegan', setup["suggester"].id)
    if orphaned_by == "deleted":
        delete_recipe(session, setup["recipe"], setup["owner"].id)
    else:
        session.get(Recipe, setup["recipe"]).creator_id = None
        session.commit()

    with pytest.raises(InvalidInput):
        accept_tag_suggestion(session, suggestion.id, setup["owner"].id)

    session.expire_all()
    assert session.get(TagSuggestion, suggestion.id).status == 'REJECTED'
    assert session.query(Tag).count() == 0


def test_listing_requires_membership(session, setup, make_user):
    create_tag_suggestion(session, setup["recipe"], 'vegan', setup["suggester"].id)

    assert [s.tag_name for s in get_tag_suggestions(session, setup["recipe"], setup["owner"].id)] == ['vegan']
    assert get_tag_suggestions(session, setup["recipe"], setup["owner"].id, 'rejected') == []
    with pytest.raises(PermissionDenied):
        get_tag_suggestions(session, setup["recipe"], make_user().id)
