from dataclasses import dataclass, field, fields
from typing import Any, List, Optional


class _Unset:
    """Marker for a field the caller did not supply."""

    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET = _Unset()

# Fields kept identical across a personal recipe and its community copies
SYNCED_SCALAR_FIELDS = ('title', 'servings', 'prep_time', 'cook_time', 'rest_time', 'image_url')


@dataclass
class IngredientInput:
    name: str
    quantity: Optional[float] = None
    unit: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        return cls(name=data.get('name', ''), quantity=data.get('quantity'), unit=data.get('unit'))


@dataclass
class RecipeInput:
    title: str
    steps: List[str]
    servings: int = 4
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    rest_time: Optional[int] = None
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    ingredients: List[IngredientInput] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data):
        return cls(
            title=data.get('title'),
            steps=list(data.get('steps') or []),
            servings=data.get('servings', 4),
            prep_time=data.get('prep_time'),
            cook_time=data.get('cook_time'),
            rest_time=data.get('rest_time'),
            image_url=data.get('image_url'),
            tags=list(data.get('tags') or []),
            ingredients=[IngredientInput.from_dict(i) for i in data.get('ingredients') or []],
        )


@dataclass
class RecipeUpdate:
    """Partial update of a recipe.

    A field left as ``UNSET`` is untouched, on the edited recipe and on every
    linked recipe alike; ``None`` on a nullable field clears it.
    """

    title: Any = UNSET
    servings: Any = UNSET
    prep_time: Any = UNSET
    cook_time: Any = UNSET
    rest_time: Any = UNSET
    image_url: Any = UNSET
    steps: Any = UNSET
    ingredients: Any = UNSET
    tags: Any = UNSET

    @classmethod
    def from_dict(cls, data):
        kwargs = {}
        for f in fields(cls):
            if f.name in data:
                kwargs[f.name] = data[f.name]
        if 'ingredients' in kwargs:
            kwargs['ingredients'] = [IngredientInput.from_dict(i) for i in kwargs['ingredients'] or []]
        if 'steps' in kwargs:
            kwargs['steps'] = list(kwargs['steps'] or [])
        if 'tags' in kwargs:
            kwargs['tags'] = list(kwargs['tags'] or [])
        return cls(**kwargs)

    def is_set(self, name):
        return getattr(self, name) is not UNSET

    def scalar_changes(self):
        changes = {}
        for name in SYNCED_SCALAR_FIELDS:
            if self.is_set(name):
                changes[name] = getattr(self, name)
        if 'title' in changes:
            changes['title'] = changes['title'].strip()
        if 'image_url' in changes:
            changes['image_url'] = changes['image_url'].strip() if changes['image_url'] else None
        return changes

    @property
    def is_empty(self):
        return not any(self.is_set(f.name) for f in fields(self))


@dataclass
class ProposalInput:
    """Proposed replacement values for a community recipe.

    Scalars left as ``None`` keep the recipe's current value. Steps and
    ingredients are the complete proposed lists.
    """

    title: str
    steps: List[str]
    servings: Optional[int] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    rest_time: Optional[int] = None
    ingredients: List[IngredientInput] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data):
        return cls(
            title=data.get('title'),
            steps=list(data.get('steps') or []),
            servings=data.get('servings'),
            prep_time=data.get('prep_time'),
            cook_time=data.get('cook_time'),
            rest_time=data.get('rest_time'),
            ingredients=[IngredientInput.from_dict(i) for i in data.get('ingredients') or []],
        )
