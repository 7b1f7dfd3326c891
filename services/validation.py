from urllib.parse import urlparse

from services.errors import InvalidInput

TITLE_MAX = 200
TAG_NAME_MIN = 2
TAG_NAME_MAX = 50
SERVINGS_MIN = 1
SERVINGS_MAX = 100
TIME_MIN = 0
TIME_MAX = 10000
STEP_MAX = 5000
MAX_TAGS_PER_RECIPE = 10
MAX_COMMUNITY_TAGS = 100
MAX_PROPOSAL_INGREDIENTS = 50


def normalize_names(items):
    """Trim, lowercase and de-duplicate names, keeping first-seen order."""
    seen = []
    for item in items or []:
        if item is None:
            continue
        clean = item.strip().lower()
        if clean and clean not in seen:
            seen.append(clean)
    return seen


def normalize_name(name):
    return name.strip().lower() if name else ''


def is_valid_http_url(url):
    if not url:
        return True
    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def validate_title(title):
    if title is None or not title.strip():
        raise InvalidInput('RECIPE_003', 'Title required')
    if len(title.strip()) > TITLE_MAX:
        raise InvalidInput('RECIPE_003', f'Title must be at most {TITLE_MAX} characters')


def validate_servings(servings):
    if isinstance(servings, bool) or not isinstance(servings, int) or not SERVINGS_MIN <= servings <= SERVINGS_MAX:
        raise InvalidInput('RECIPE_005', f'Servings must be an integer between {SERVINGS_MIN} and {SERVINGS_MAX}')


def validate_time(value, field):
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or not TIME_MIN <= value <= TIME_MAX:
        raise InvalidInput('RECIPE_006', f'{field} must be an integer between {TIME_MIN} and {TIME_MAX}')


def validate_steps(steps):
    if not steps:
        raise InvalidInput('RECIPE_004', 'At least one step is required')
    for step in steps:
        if step is None or not step.strip():
            raise InvalidInput('RECIPE_004', 'Step instruction cannot be empty')
        if len(step.strip()) > STEP_MAX:
            raise InvalidInput('RECIPE_004', f'Step instruction must be at most {STEP_MAX} characters')


def validate_image_url(url):
    if not is_valid_http_url(url):
        raise InvalidInput('RECIPE_007', 'Image URL must be an http or https URL')


def validate_tag_name(name):
    clean = normalize_name(name)
    if not clean:
        raise InvalidInput('TAG_001', 'Tag name is required')
    if not TAG_NAME_MIN <= len(clean) <= TAG_NAME_MAX:
        raise InvalidInput('TAG_001', f'Tag name must be between {TAG_NAME_MIN} and {TAG_NAME_MAX} characters')
    return clean


def validate_ingredients(ingredients, limit=None):
    if limit is not None and len(ingredients) > limit:
        raise InvalidInput('INGREDIENT_002', f'Maximum {limit} ingredients')
    for item in ingredients:
        if not normalize_name(item.name):
            raise InvalidInput('INGREDIENT_001', 'Ingredient name is required')
        if item.quantity is not None and (isinstance(item.quantity, bool) or not isinstance(item.quantity, (int, float)) or item.quantity < 0):
            raise InvalidInput('INGREDIENT_001', 'Ingredient quantity must be a non-negative number')


def validate_recipe_input(data):
    """Validate a full `RecipeInput` the way recipe creation does."""
    validate_title(data.title)
    validate_servings(data.servings)
    validate_time(data.prep_time, 'Prep time')
    validate_time(data.cook_time, 'Cook time')
    validate_time(data.rest_time, 'Rest time')
    validate_steps(data.steps)
    validate_image_url(data.image_url)
    for tag in data.tags:
        validate_tag_name(tag)
    validate_ingredients(data.ingredients)


def validate_recipe_update(changes):
    """Validate only the fields a `RecipeUpdate` actually supplies."""
    if changes.is_set('title'):
        validate_title(changes.title)
    if changes.is_set('servings'):
        validate_servings(changes.servings)
    for field, label in (('prep_time', 'Prep time'), ('cook_time', 'Cook time'), ('rest_time', 'Rest time')):
        if changes.is_set(field):
            validate_time(getattr(changes, field), label)
    if changes.is_set('steps'):
        validate_steps(changes.steps)
    if changes.is_set('image_url'):
        validate_image_url(changes.image_url)
    if changes.is_set('tags'):
        for tag in changes.tags:
            validate_tag_name(tag)
    if changes.is_set('ingredients'):
        validate_ingredients(changes.ingredients)


def validate_proposal_input(data):
    validate_title(data.title)
    if data.servings is not None:
        validate_servings(data.servings)
    validate_time(data.prep_time, 'Prep time')
    validate_time(data.cook_time, 'Cook time')
    validate_time(data.rest_time, 'Rest time')
    validate_steps(data.steps)
    validate_ingredients(data.ingredients, limit=MAX_PROPOSAL_INGREDIENTS)
