# Overview: Service-layer operations for recipes; ingredients and version cloning.

from __future__ import annotations

from flask import current_app

from ..errors import InvalidState, NotFound
from ..extensions import db
from ..models import InventoryItem, Recipe, RecipeIngredient, RecipeStatus, UsageStage
from ..validation import parse_enum, require_positive_quantity, require_text


def create_recipe(
    *,
    name: str,
    batch_size_litres,
    style: str | None = None,
    estimated_total_days: int | None = None,
    target_og: float | None = None,
    target_fg: float | None = None,
    notes: str | None = None,
) -> Recipe:
    try:
        recipe = Recipe(
            name=require_text(name, field="name"),
            style=style,
            status=RecipeStatus.DRAFT.value,
            version=1,
            batch_size_litres=require_positive_quantity(batch_size_litres, field="batch_size_litres"),
            estimated_total_days=estimated_total_days,
            target_og=target_og,
            target_fg=target_fg,
            notes=notes,
        )
        db.session.add(recipe)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return recipe


def add_ingredient(
    recipe_id: int,
    *,
    inventory_item_id: int,
    quantity,
    usage_stage=UsageStage.BOIL,
    notes: str | None = None,
) -> RecipeIngredient:
    try:
        recipe = db.session.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFound("Recipe", recipe_id)
        if recipe.status == RecipeStatus.ARCHIVED.value:
            raise InvalidState(f"Recipe {recipe.name} v{recipe.version} is archived")
        item = db.session.get(InventoryItem, inventory_item_id)
        if item is None:
            raise NotFound("InventoryItem", inventory_item_id)

        ingredient = RecipeIngredient(
            inventory_item_id=item.id,
            quantity=require_positive_quantity(quantity),
            unit=item.unit,
            usage_stage=parse_enum(UsageStage, usage_stage, field="usage_stage").value,
            notes=notes,
        )
        recipe.ingredients.append(ingredient)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return ingredient


def set_recipe_status(recipe_id: int, status) -> Recipe:
    try:
        recipe = db.session.get(Recipe, recipe_id)
        if recipe is None:
            raise NotFound("Recipe", recipe_id)
        recipe.status = parse_enum(RecipeStatus, status).value
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return recipe


def clone_recipe(recipe_id: int) -> Recipe:
    """
    New version of a recipe: version + 1, same ingredients, draft status.

    The source is left untouched; batches already planned against it keep
    their requirements.
    """
    try:
        source = db.session.get(Recipe, recipe_id)
        if source is None:
            raise NotFound("Recipe", recipe_id)
        latest = (
            db.session.query(db.func.max(Recipe.version))
            .filter(Recipe.name == source.name)
            .scalar()
        )
        clone = Recipe(
            name=source.name,
            style=source.style,
            status=RecipeStatus.DRAFT.value,
            version=(latest or source.version) + 1,
            parent_recipe_id=source.id,
            batch_size_litres=source.batch_size_litres,
            estimated_total_days=source.estimated_total_days,
            target_og=source.target_og,
            target_fg=source.target_fg,
            notes=source.notes,
        )
        for ing in source.ingredients:
            clone.ingredients.append(
                RecipeIngredient(
                    inventory_item_id=ing.inventory_item_id,
                    quantity=ing.quantity,
                    unit=ing.unit,
                    usage_stage=ing.usage_stage,
                    notes=ing.notes,
                )
            )
        db.session.add(clone)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Cloned recipe %s v%s -> v%s", source.name, source.version, clone.version)
    return clone
